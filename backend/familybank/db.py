import logging
import os
from contextlib import contextmanager
from typing import Iterator
from urllib.parse import quote_plus

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from familybank.core.config import ReadIntEnv
from familybank.core.errors import DuplicateOperation, StorageFailure

Base = declarative_base()
engine = None
SessionLocal = None
logger = logging.getLogger("familybank.db")

_ATOMIC_DEPTH_KEY = "familybank_atomic_depth"


def _build_connection_url(login_env: str, password_env: str, database_override: str | None = None) -> str:
    override = os.getenv("DATABASE_URL", "").strip()
    if override:
        return override

    driver = os.getenv("SQLSERVER_DRIVER", "")
    host = os.getenv("SQLSERVER_HOST", "")
    port = os.getenv("SQLSERVER_PORT", "")
    database = database_override or os.getenv("SQLSERVER_DB", "")
    user = os.getenv(login_env, "")
    password = os.getenv(password_env, "")

    missing = [key for key, value in {
        "SQLSERVER_HOST": host,
        "SQLSERVER_PORT": port,
        "SQLSERVER_DB": database,
        "SQLSERVER_DRIVER": driver,
        login_env: user,
        password_env: password,
    }.items() if not value]
    if missing:
        raise RuntimeError(f"Missing database configuration: {', '.join(missing)}")

    driver_encoded = quote_plus(driver)
    password_encoded = quote_plus(password)
    return (
        f"mssql+pyodbc://{user}:{password_encoded}@{host}:{port}/{database}"
        f"?driver={driver_encoded}&Encrypt=yes&TrustServerCertificate=yes"
    )


def BuildUserConnectionUrl() -> str:
    return _build_connection_url("SQLSERVER_USER_LOGIN", "SQLSERVER_USER_PASSWORD")


def BuildAdminConnectionUrl(database_override: str | None = None) -> str:
    return _build_connection_url("SQLSERVER_ADMIN_LOGIN", "SQLSERVER_ADMIN_PASSWORD", database_override)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def CreateDbEngine(url: str, **kwargs) -> Engine:
    if url.startswith("sqlite"):
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        created = create_engine(url, connect_args=connect_args, **kwargs)
        event.listen(created, "connect", _enable_sqlite_foreign_keys)
        return created

    kwargs.setdefault("pool_pre_ping", True)
    kwargs.setdefault("pool_size", ReadIntEnv("SQLALCHEMY_POOL_SIZE", 10))
    kwargs.setdefault("max_overflow", ReadIntEnv("SQLALCHEMY_MAX_OVERFLOW", 20))
    kwargs.setdefault("pool_timeout", ReadIntEnv("SQLALCHEMY_POOL_TIMEOUT", 60))
    return create_engine(url, **kwargs)


def _ensure_engine():
    global engine, SessionLocal
    if engine is None:
        engine = CreateDbEngine(BuildUserConnectionUrl())
        SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def GetEngine() -> Engine:
    _ensure_engine()
    return engine


def GetDb():
    if SessionLocal is None:
        _ensure_engine()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def InAtomic(db: Session) -> bool:
    return db.info.get(_ATOMIC_DEPTH_KEY, 0) > 0


@contextmanager
def Atomic(db: Session) -> Iterator[Session]:
    """Run a block as one all-or-nothing unit of work.

    Nested blocks join the outermost one; only the outermost commits or rolls
    back. Constraint violations surface as ``DuplicateOperation``, any other
    database error as ``StorageFailure``.
    """
    depth = db.info.get(_ATOMIC_DEPTH_KEY, 0)
    db.info[_ATOMIC_DEPTH_KEY] = depth + 1
    try:
        yield db
        if depth == 0:
            db.commit()
        else:
            db.flush()
    except IntegrityError as exc:
        if depth == 0:
            db.rollback()
        raise DuplicateOperation("Operation already applied") from exc
    except SQLAlchemyError as exc:
        if depth == 0:
            db.rollback()
        logger.exception("unit of work failed")
        raise StorageFailure("Storage unavailable, please retry shortly") from exc
    except Exception:
        if depth == 0:
            db.rollback()
        raise
    finally:
        db.info[_ATOMIC_DEPTH_KEY] = depth
