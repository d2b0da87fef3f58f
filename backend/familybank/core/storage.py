import logging
from threading import Lock

from fastapi import Depends, HTTPException, status
from sqlalchemy import inspect
from sqlalchemy.orm import Session

from familybank.core.migrations import RunMigrations
from familybank.db import GetDb
from familybank.modules.accounts.models import Account, Balance, Jar
from familybank.modules.allowances.models import Allowance, AllowancePayment
from familybank.modules.chores.models import Chore, ChoreRecurrenceRun
from familybank.modules.ledger.models import Transaction
from familybank.modules.notifications.models import Notification
from familybank.modules.wishlist.models import WishlistItem

_storage_lock = Lock()
_storage_ready = False
logger = logging.getLogger("familybank.storage")

STORAGE_TABLES = [
    Account,
    Jar,
    Balance,
    Transaction,
    Chore,
    ChoreRecurrenceRun,
    Allowance,
    AllowancePayment,
    WishlistItem,
    Notification,
]


def _MissingTables(db: Session) -> list[str]:
    inspector = inspect(db.get_bind())
    return [table.__tablename__ for table in STORAGE_TABLES if not inspector.has_table(table.__tablename__)]


def ResetStorageReady() -> None:
    global _storage_ready
    with _storage_lock:
        _storage_ready = False


def EnsureStorageReady(db: Session = Depends(GetDb)) -> None:
    global _storage_ready
    if _storage_ready:
        return

    with _storage_lock:
        if _storage_ready:
            return
        missing = _MissingTables(db)
        if not missing:
            _storage_ready = True
            return

        logger.info("storage missing tables=%s", ",".join(missing))
        try:
            RunMigrations()
        except Exception:  # noqa: BLE001
            logger.exception("storage migration failed")

        missing = _MissingTables(db)
        if missing:
            logger.error("storage still missing tables=%s", ",".join(missing))
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="FamilyBank storage not initialized. Run alembic upgrade head.",
            )
        _storage_ready = True
