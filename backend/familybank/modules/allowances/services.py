from __future__ import annotations

import logging
from datetime import date, datetime, timedelta

from sqlalchemy.orm import Session

from familybank.core.clock import Clock, DayOfWeek, GetClock
from familybank.core.errors import DuplicateOperation, ValidationFailed
from familybank.db import Atomic
from familybank.modules.accounts.services.jar_service import GetAccount
from familybank.modules.allowances.models import Allowance, AllowancePayment
from familybank.modules.ledger.models import REFERENCE_ALLOWANCE, TransactionType
from familybank.modules.ledger.services.allocation_service import SplitIntoJars
from familybank.modules.notifications.services import EVENT_ALLOWANCE_PAID, DomainEvent, EmitDomainEvent

logger = logging.getLogger("familybank.allowances")


def _NextWeekly(after_date: date, day_of_week: int) -> date:
    delta = (day_of_week - DayOfWeek(after_date)) % 7
    if delta == 0:
        delta = 7
    return after_date + timedelta(days=delta)


def _ValidateDayOfWeek(day_of_week: int) -> None:
    if isinstance(day_of_week, bool) or not isinstance(day_of_week, int) or day_of_week < 0 or day_of_week > 6:
        raise ValidationFailed("Day of week must be 0 (Sunday) to 6 (Saturday)")


def _ValidateWeeklyAmount(weekly_amount: int) -> None:
    if isinstance(weekly_amount, bool) or not isinstance(weekly_amount, int) or weekly_amount <= 0:
        raise ValidationFailed("Weekly amount must be a positive number of tokens")


def ComputeFirstPaymentAt(day_of_week: int, today: date, clock: Clock | None = None) -> datetime:
    """Start of the next ``day_of_week`` strictly after ``today``."""
    _ValidateDayOfWeek(day_of_week)
    return (clock or GetClock()).StartOfDay(_NextWeekly(today, day_of_week))


def GetAllowance(db: Session, account_id: int) -> Allowance | None:
    return db.query(Allowance).filter(Allowance.AccountId == account_id).first()


def ListAllowancePayments(db: Session, account_id: int, limit: int = 12) -> list[AllowancePayment]:
    return (
        db.query(AllowancePayment)
        .filter(AllowancePayment.AccountId == account_id)
        .order_by(AllowancePayment.PeriodDate.desc(), AllowancePayment.Id.desc())
        .limit(limit)
        .all()
    )


def UpsertAllowance(
    db: Session,
    account_id: int,
    *,
    weekly_amount: int,
    day_of_week: int,
    is_active: bool = True,
    actor_user_id: int | None = None,
    clock: Clock | None = None,
) -> Allowance:
    _ValidateWeeklyAmount(weekly_amount)
    _ValidateDayOfWeek(day_of_week)
    GetAccount(db, account_id)

    clock = clock or GetClock()
    now = clock.Now()
    next_payment_at = ComputeFirstPaymentAt(day_of_week, clock.Today(), clock)

    with Atomic(db):
        allowance = GetAllowance(db, account_id)
        if allowance is None:
            allowance = Allowance(
                AccountId=account_id,
                CreatedByUserId=actor_user_id,
                CreatedAt=now,
            )
            db.add(allowance)
        allowance.WeeklyAmount = weekly_amount
        allowance.DayOfWeek = day_of_week
        allowance.IsActive = bool(is_active)
        allowance.NextPaymentAt = next_payment_at
        allowance.UpdatedAt = now
    db.refresh(allowance)
    logger.info(
        "allowance saved account_id=%s weekly_amount=%s day_of_week=%s active=%s next_payment_at=%s",
        account_id,
        weekly_amount,
        day_of_week,
        allowance.IsActive,
        next_payment_at.isoformat(),
    )
    return allowance


def _MoveNextPayment(db: Session, allowance_id: int, next_payment_at: datetime, now: datetime) -> None:
    with Atomic(db):
        db.query(Allowance).filter(Allowance.Id == allowance_id).update(
            {"NextPaymentAt": next_payment_at, "UpdatedAt": now},
            synchronize_session=False,
        )


def _PayAllowance(
    db: Session,
    clock: Clock,
    *,
    allowance_id: int,
    account_id: int,
    amount: int,
    period_date: date,
    next_payment_at: datetime,
) -> None:
    now = clock.Now()
    with Atomic(db):
        db.add(
            AllowancePayment(
                AllowanceId=allowance_id,
                AccountId=account_id,
                PeriodDate=period_date,
                Amount=amount,
                PaidAt=now,
            )
        )
        db.flush()
        SplitIntoJars(
            db,
            account_id,
            amount,
            TransactionType.ALLOWANCE_SPLIT,
            reference_type=REFERENCE_ALLOWANCE,
            reference_id=allowance_id,
            description="Weekly allowance",
            clock=clock,
        )
        _MoveNextPayment(db, allowance_id, next_payment_at, now)


def ProcessDueAllowances(db: Session, clock: Clock | None = None) -> dict:
    """Pay every active allowance whose ``NextPaymentAt`` has passed.

    Each allowance is its own unit of work keyed by (allowance, period date),
    so a re-run never pays a period twice and one failure never blocks the
    rest. The next payment is always a week after the processing day, also
    when the period turns out to be paid already.
    """
    clock = clock or GetClock()
    now = clock.Now()
    next_payment_at = clock.StartOfDay(clock.Today() + timedelta(days=7))
    due = (
        db.query(Allowance)
        .filter(Allowance.IsActive == True, Allowance.NextPaymentAt <= now)  # noqa: E712
        .order_by(Allowance.NextPaymentAt.asc(), Allowance.Id.asc())
        .all()
    )
    batch = [(row.Id, row.AccountId, row.WeeklyAmount, row.NextPaymentAt) for row in due]
    logger.info("allowance run started due=%s", len(batch))

    processed = 0
    failed = 0
    skipped = 0
    for allowance_id, account_id, amount, due_at in batch:
        period_date = clock.LocalDate(due_at)
        try:
            _PayAllowance(
                db,
                clock,
                allowance_id=allowance_id,
                account_id=account_id,
                amount=amount,
                period_date=period_date,
                next_payment_at=next_payment_at,
            )
        except DuplicateOperation:
            logger.info("allowance period already paid allowance_id=%s period=%s", allowance_id, period_date)
            try:
                _MoveNextPayment(db, allowance_id, next_payment_at, now)
            except Exception:  # noqa: BLE001
                logger.exception("allowance schedule not advanced allowance_id=%s", allowance_id)
            skipped += 1
            continue
        except Exception:  # noqa: BLE001
            logger.exception("allowance payment failed allowance_id=%s account_id=%s", allowance_id, account_id)
            failed += 1
            continue

        processed += 1
        logger.info(
            "allowance paid allowance_id=%s account_id=%s amount=%s period=%s",
            allowance_id,
            account_id,
            amount,
            period_date,
        )
        EmitDomainEvent(
            db,
            DomainEvent(
                AccountId=account_id,
                Kind=EVENT_ALLOWANCE_PAID,
                Amount=amount,
                ReferenceId=allowance_id,
                OccurredAt=now,
            ),
            clock,
        )

    logger.info("allowance run finished processed=%s failed=%s skipped=%s", processed, failed, skipped)
    return {
        "Due": len(batch),
        "Processed": processed,
        "Failed": failed,
        "Skipped": skipped,
    }
