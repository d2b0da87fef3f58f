from pathlib import Path
import logging
import threading
import time
import traceback

from alembic import command
from alembic.config import Config

from familybank.core.config import ReadIntEnv
from familybank.db import BuildAdminConnectionUrl

logger = logging.getLogger("familybank.migrations")

BACKEND_DIR = Path(__file__).resolve().parents[2]


def BuildAlembicConfig(url: str | None = None) -> Config:
    config_path = BACKEND_DIR / "alembic.ini"
    if not config_path.exists():
        raise RuntimeError("Missing alembic.ini for migrations")

    alembic_cfg = Config(str(config_path))
    alembic_cfg.set_main_option("sqlalchemy.url", url or BuildAdminConnectionUrl())
    alembic_cfg.set_main_option("script_location", str(BACKEND_DIR / "alembic"))
    # The app has already configured logging; alembic.ini must not replace it.
    alembic_cfg.attributes["configure_logger"] = False
    return alembic_cfg


def _StartUpgrade(alembic_cfg: Config, revision: str) -> tuple[threading.Event, dict[str, str]]:
    error: dict[str, str] = {}
    done = threading.Event()

    def _run() -> None:
        try:
            command.upgrade(alembic_cfg, revision)
        except Exception:  # noqa: BLE001
            error["trace"] = traceback.format_exc()
        finally:
            done.set()

    threading.Thread(target=_run, name="familybank-migrate", daemon=True).start()
    return done, error


def RunMigrations(url: str | None = None, revision: str = "head") -> None:
    """Upgrade the FamilyBank schema, logging progress while alembic runs.

    Raises ``TimeoutError`` once ``MIGRATIONS_TIMEOUT_SECONDS`` elapse (0 waits
    forever) and ``RuntimeError`` if the upgrade itself fails.
    """
    alembic_cfg = BuildAlembicConfig(url)
    timeout_seconds = ReadIntEnv("MIGRATIONS_TIMEOUT_SECONDS", 600)
    progress_seconds = max(1, ReadIntEnv("MIGRATIONS_PROGRESS_LOG_SECONDS", 20))
    logger.info(
        "schema upgrade started revision=%s timeout=%ss progress_log=%ss",
        revision,
        timeout_seconds,
        progress_seconds,
    )

    started = time.monotonic()
    done, error = _StartUpgrade(alembic_cfg, revision)
    while not done.wait(timeout=progress_seconds):
        elapsed = int(time.monotonic() - started)
        logger.info("schema upgrade still running elapsed=%ss", elapsed)
        if timeout_seconds > 0 and elapsed >= timeout_seconds:
            logger.error("schema upgrade timed out elapsed=%ss", elapsed)
            raise TimeoutError(f"schema upgrade timed out after {elapsed}s")

    if "trace" in error:
        logger.error("schema upgrade failed:\n%s", error["trace"])
        raise RuntimeError("schema upgrade failed")

    logger.info("schema upgrade complete revision=%s elapsed=%ss", revision, int(time.monotonic() - started))
