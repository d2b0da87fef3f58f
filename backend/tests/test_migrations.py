from sqlalchemy import create_engine, inspect

from familybank.core.migrations import BuildAlembicConfig, RunMigrations
from familybank.core.storage import STORAGE_TABLES


def test_alembic_config_uses_database_url_and_keeps_app_logging(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///familybank-config-check.db")

    config = BuildAlembicConfig()

    assert config.get_main_option("sqlalchemy.url") == "sqlite:///familybank-config-check.db"
    assert config.get_main_option("script_location").endswith("alembic")
    assert config.attributes["configure_logger"] is False


def test_upgrade_creates_every_storage_table(tmp_path, monkeypatch):
    monkeypatch.setenv("MIGRATIONS_PROGRESS_LOG_SECONDS", "1")
    url = f"sqlite:///{tmp_path / 'familybank.db'}"

    RunMigrations(url)

    engine = create_engine(url)
    try:
        tables = set(inspect(engine).get_table_names())
    finally:
        engine.dispose()
    assert {model.__tablename__ for model in STORAGE_TABLES} <= tables
    assert "alembic_version" in tables
