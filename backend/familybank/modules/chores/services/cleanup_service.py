import logging
from datetime import timedelta

from sqlalchemy import or_
from sqlalchemy.orm import Session

from familybank.core.clock import Clock, GetClock
from familybank.core.config import ChoreRetentionDays
from familybank.db import Atomic
from familybank.modules.chores.models import Chore, ChoreStatus

logger = logging.getLogger("familybank.chores")


def PurgeApprovedChores(
    db: Session,
    clock: Clock | None = None,
    retention_days: int | None = None,
) -> dict:
    """Delete approved chores older than the retention window.

    Recurring templates are kept; their materialized instances are not.
    """
    days = ChoreRetentionDays() if retention_days is None else retention_days
    cutoff = (clock or GetClock()).Now() - timedelta(days=days)

    with Atomic(db):
        deleted = (
            db.query(Chore)
            .filter(
                Chore.Status == ChoreStatus.APPROVED.value,
                Chore.ApprovedAt < cutoff,
                or_(Chore.IsRecurring == False, Chore.ParentChoreId.isnot(None)),  # noqa: E712
            )
            .delete(synchronize_session=False)
        )
    logger.info("approved chores purged deleted=%s cutoff=%s", deleted, cutoff.isoformat())
    return {"Deleted": deleted, "Cutoff": cutoff.isoformat()}
