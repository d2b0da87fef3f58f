from __future__ import annotations

import logging
from datetime import date

from sqlalchemy.orm import Session

from familybank.core.clock import Clock, DayOfWeek, GetClock
from familybank.core.errors import DuplicateOperation, FamilyBankError
from familybank.db import Atomic
from familybank.modules.chores.models import (
    RECURRENCE_DAILY,
    RECURRENCE_WEEKLY,
    Chore,
    ChoreRecurrenceRun,
    ChoreStatus,
)
from familybank.modules.chores.services.lifecycle_service import ParseRecurrenceDays

logger = logging.getLogger("familybank.chores")


def ShouldMaterializeOn(template: Chore, on_date: date) -> bool:
    if template.RecurrenceType == RECURRENCE_DAILY:
        return True
    if template.RecurrenceType == RECURRENCE_WEEKLY:
        return DayOfWeek(on_date) in ParseRecurrenceDays(template.RecurrenceDays)
    return False


def LoadRecurringTemplates(db: Session) -> list[Chore]:
    return (
        db.query(Chore)
        .filter(
            Chore.IsRecurring == True,  # noqa: E712
            Chore.Status == ChoreStatus.APPROVED.value,
            Chore.ParentChoreId.is_(None),
        )
        .order_by(Chore.Id.asc())
        .all()
    )


def _AlreadyMaterialized(db: Session, template_id: int, run_date: date) -> bool:
    return (
        db.query(ChoreRecurrenceRun)
        .filter(ChoreRecurrenceRun.TemplateChoreId == template_id, ChoreRecurrenceRun.RunDate == run_date)
        .first()
        is not None
    )


def MaterializeRecurringChores(
    db: Session,
    clock: Clock | None = None,
    run_date: date | None = None,
) -> dict:
    """Create today's PENDING instances of every matching recurring template.

    A ``ChoreRecurrenceRun`` row per (template, day) guards against a second
    run creating duplicates. Each template is handled in its own unit of work.
    """
    clock = clock or GetClock()
    today = run_date or clock.Today()
    now = clock.Now()
    templates = LoadRecurringTemplates(db)
    due = [
        (template.Id, template.AccountId, template.Title, template.Description, template.TokenReward)
        for template in templates
        if ShouldMaterializeOn(template, today)
    ]

    created = 0
    skipped = 0
    failed = 0
    for template_id, account_id, title, description, reward in due:
        if _AlreadyMaterialized(db, template_id, today):
            skipped += 1
            continue
        try:
            with Atomic(db):
                instance = Chore(
                    AccountId=account_id,
                    Title=title,
                    Description=description,
                    TokenReward=reward,
                    Status=ChoreStatus.PENDING.value,
                    IsRecurring=False,
                    ParentChoreId=template_id,
                    CreatedAt=now,
                    UpdatedAt=now,
                )
                db.add(instance)
                db.flush()
                db.add(
                    ChoreRecurrenceRun(
                        AccountId=account_id,
                        TemplateChoreId=template_id,
                        RunDate=today,
                        ChoreId=instance.Id,
                        CreatedAt=now,
                    )
                )
            created += 1
        except DuplicateOperation:
            logger.info("recurring chore already materialized template_id=%s run_date=%s", template_id, today)
            skipped += 1
        except FamilyBankError:
            logger.exception("recurring chore materialization failed template_id=%s", template_id)
            failed += 1

    logger.info(
        "recurring chores processed run_date=%s templates=%s created=%s skipped=%s failed=%s",
        today,
        len(templates),
        created,
        skipped,
        failed,
    )
    return {
        "RunDate": today.isoformat(),
        "Templates": len(templates),
        "Created": created,
        "Skipped": skipped,
        "Failed": failed,
    }
