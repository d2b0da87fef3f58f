"""Chore state machine: PENDING -> SUBMITTED -> APPROVED, or back to PENDING.

Status changes are compare-and-swap updates keyed on the expected current
status, so two racing approvals cannot both pay out.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable

from sqlalchemy.orm import Session

from familybank.core.clock import Clock, GetClock
from familybank.core.errors import EntityNotFound, InvalidStateTransition, ValidationFailed
from familybank.db import Atomic
from familybank.modules.accounts.services.jar_service import GetAccount
from familybank.modules.chores.models import (
    RECURRENCE_DAILY,
    RECURRENCE_TYPES,
    RECURRENCE_WEEKLY,
    Chore,
    ChoreStatus,
)
from familybank.modules.ledger.models import REFERENCE_CHORE, TransactionType
from familybank.modules.ledger.services.allocation_service import SplitIntoJars
from familybank.modules.notifications.services import EVENT_CHORE_APPROVED, DomainEvent, EmitDomainEvent

logger = logging.getLogger("familybank.chores")

_UNSET = object()


def ParseRecurrenceDays(value: str | None) -> list[int]:
    if not value:
        return []
    return sorted({int(part) for part in value.split(",") if part.strip() != ""})


def FormatRecurrenceDays(days: Iterable[int] | None) -> str | None:
    if days is None:
        return None
    values = sorted(set(days))
    for day in values:
        if isinstance(day, bool) or not isinstance(day, int) or day < 0 or day > 6:
            raise ValidationFailed("Recurrence days must be weekdays 0 (Sunday) to 6 (Saturday)")
    return ",".join(str(day) for day in values) or None


def _ValidateReward(token_reward: int) -> None:
    if isinstance(token_reward, bool) or not isinstance(token_reward, int) or token_reward <= 0:
        raise ValidationFailed("Token reward must be a positive number of tokens")


def _ValidateRecurrence(is_recurring: bool, recurrence_type: str | None, recurrence_days: str | None) -> None:
    if not is_recurring:
        return
    if recurrence_type not in RECURRENCE_TYPES:
        raise ValidationFailed("Recurring chores need a recurrence type of daily or weekly")
    if recurrence_type == RECURRENCE_WEEKLY and not recurrence_days:
        raise ValidationFailed("Weekly chores need at least one recurrence day")


def GetChore(db: Session, chore_id: int) -> Chore:
    chore = db.query(Chore).filter(Chore.Id == chore_id).first()
    if not chore:
        raise EntityNotFound(f"Chore {chore_id} not found")
    return chore


def ListChores(db: Session, account_id: int, status: ChoreStatus | None = None) -> list[Chore]:
    query = db.query(Chore).filter(Chore.AccountId == account_id)
    if status is not None:
        query = query.filter(Chore.Status == status.value)
    return query.order_by(Chore.CreatedAt.desc(), Chore.Id.desc()).all()


def CreateChore(
    db: Session,
    account_id: int,
    *,
    title: str,
    token_reward: int,
    description: str | None = None,
    due_at: datetime | None = None,
    is_recurring: bool = False,
    recurrence_type: str | None = None,
    recurrence_days: Iterable[int] | None = None,
    clock: Clock | None = None,
) -> Chore:
    if not (title or "").strip():
        raise ValidationFailed("Title is required")
    _ValidateReward(token_reward)
    days = FormatRecurrenceDays(recurrence_days) if is_recurring and recurrence_type == RECURRENCE_WEEKLY else None
    _ValidateRecurrence(is_recurring, recurrence_type, days)
    GetAccount(db, account_id)

    now = (clock or GetClock()).Now()
    with Atomic(db):
        chore = Chore(
            AccountId=account_id,
            Title=title.strip(),
            Description=description,
            TokenReward=token_reward,
            Status=ChoreStatus.PENDING.value,
            DueAt=due_at,
            IsRecurring=bool(is_recurring),
            RecurrenceType=recurrence_type if is_recurring else None,
            RecurrenceDays=days,
            CreatedAt=now,
            UpdatedAt=now,
        )
        db.add(chore)
    db.refresh(chore)
    logger.info("chore created chore_id=%s account_id=%s reward=%s", chore.Id, account_id, token_reward)
    return chore


def UpdateChore(
    db: Session,
    chore_id: int,
    *,
    title: str | None = None,
    description=_UNSET,
    token_reward: int | None = None,
    due_at=_UNSET,
    is_recurring: bool | None = None,
    recurrence_type=_UNSET,
    recurrence_days=_UNSET,
    clock: Clock | None = None,
) -> Chore:
    chore = GetChore(db, chore_id)
    if chore.Status == ChoreStatus.APPROVED.value:
        raise InvalidStateTransition("Approved chores cannot be edited")
    if title is not None and not title.strip():
        raise ValidationFailed("Title is required")
    if token_reward is not None:
        _ValidateReward(token_reward)

    next_recurring = chore.IsRecurring if is_recurring is None else bool(is_recurring)
    next_type = chore.RecurrenceType if recurrence_type is _UNSET else recurrence_type
    next_days = chore.RecurrenceDays if recurrence_days is _UNSET else FormatRecurrenceDays(recurrence_days)
    if not next_recurring:
        next_type = None
        next_days = None
    elif next_type == RECURRENCE_DAILY:
        next_days = None
    _ValidateRecurrence(next_recurring, next_type, next_days)

    with Atomic(db):
        if title is not None:
            chore.Title = title.strip()
        if description is not _UNSET:
            chore.Description = description
        if token_reward is not None:
            chore.TokenReward = token_reward
        if due_at is not _UNSET:
            chore.DueAt = due_at
        chore.IsRecurring = next_recurring
        chore.RecurrenceType = next_type
        chore.RecurrenceDays = next_days
        chore.UpdatedAt = (clock or GetClock()).Now()
    db.refresh(chore)
    return chore


def DeleteChore(db: Session, chore_id: int) -> None:
    with Atomic(db):
        deleted = db.query(Chore).filter(Chore.Id == chore_id).delete(synchronize_session=False)
        if not deleted:
            raise EntityNotFound(f"Chore {chore_id} not found")
    logger.info("chore deleted chore_id=%s", chore_id)


def _CompareAndSwapStatus(db: Session, chore_id: int, expected: ChoreStatus, values: dict) -> None:
    updated = (
        db.query(Chore)
        .filter(Chore.Id == chore_id, Chore.Status == expected.value)
        .update(values, synchronize_session=False)
    )
    if updated != 1:
        raise InvalidStateTransition(f"Chore {chore_id} is no longer {expected.value}")


def _RequireStatus(chore: Chore, expected: ChoreStatus, action: str) -> None:
    if chore.Status != expected.value:
        raise InvalidStateTransition(
            f"Cannot {action} chore {chore.Id} in status {chore.Status}; expected {expected.value}"
        )


def SubmitChore(
    db: Session,
    chore_id: int,
    *,
    account_id: int | None = None,
    clock: Clock | None = None,
) -> Chore:
    chore = GetChore(db, chore_id)
    if account_id is not None and chore.AccountId != account_id:
        raise EntityNotFound(f"Chore {chore_id} not found")
    _RequireStatus(chore, ChoreStatus.PENDING, "submit")

    now = (clock or GetClock()).Now()
    with Atomic(db):
        _CompareAndSwapStatus(
            db,
            chore_id,
            ChoreStatus.PENDING,
            {"Status": ChoreStatus.SUBMITTED.value, "SubmittedAt": now, "UpdatedAt": now},
        )
    db.refresh(chore)
    logger.info("chore submitted chore_id=%s account_id=%s", chore_id, chore.AccountId)
    return chore


def ApproveChore(
    db: Session,
    chore_id: int,
    *,
    actor_user_id: int | None = None,
    clock: Clock | None = None,
) -> Chore:
    """Approve a submitted chore and pay its reward across the jars.

    The status flip and the split commit together; on any failure the chore
    stays SUBMITTED and no balance moves.
    """
    clock = clock or GetClock()
    chore = GetChore(db, chore_id)
    _RequireStatus(chore, ChoreStatus.SUBMITTED, "approve")
    account_id = chore.AccountId
    reward = chore.TokenReward
    title = chore.Title

    now = clock.Now()
    with Atomic(db):
        _CompareAndSwapStatus(
            db,
            chore_id,
            ChoreStatus.SUBMITTED,
            {"Status": ChoreStatus.APPROVED.value, "ApprovedAt": now, "UpdatedAt": now},
        )
        SplitIntoJars(
            db,
            account_id,
            reward,
            TransactionType.CHORE_REWARD,
            reference_type=REFERENCE_CHORE,
            reference_id=chore_id,
            description=title,
            actor_user_id=actor_user_id,
            clock=clock,
        )
    db.refresh(chore)
    logger.info("chore approved chore_id=%s account_id=%s reward=%s", chore_id, account_id, reward)
    EmitDomainEvent(
        db,
        DomainEvent(
            AccountId=account_id,
            Kind=EVENT_CHORE_APPROVED,
            Amount=reward,
            ReferenceId=chore_id,
            OccurredAt=now,
        ),
        clock,
    )
    return chore


def RejectChore(db: Session, chore_id: int, *, clock: Clock | None = None) -> Chore:
    chore = GetChore(db, chore_id)
    _RequireStatus(chore, ChoreStatus.SUBMITTED, "reject")

    now = (clock or GetClock()).Now()
    with Atomic(db):
        _CompareAndSwapStatus(
            db,
            chore_id,
            ChoreStatus.SUBMITTED,
            {"Status": ChoreStatus.PENDING.value, "SubmittedAt": None, "UpdatedAt": now},
        )
    db.refresh(chore)
    logger.info("chore rejected chore_id=%s account_id=%s", chore_id, chore.AccountId)
    return chore
