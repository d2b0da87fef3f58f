"""Single-jar balance movements.

Every change to a ``Balance`` row goes through ``ApplyJarDelta`` so that the
row update and its ``Transaction`` insert land in the same unit of work.
Debits are one conditional ``UPDATE ... WHERE Amount >= :amount`` so two
concurrent debits cannot both pass a balance check.
"""

from __future__ import annotations

import logging

from sqlalchemy import update
from sqlalchemy.orm import Session

from familybank.core.clock import Clock, GetClock
from familybank.core.errors import AccountNotFound, InsufficientFunds, ValidationFailed
from familybank.db import Atomic
from familybank.modules.accounts.models import CASH_OUT_JAR_TYPES, Balance, JarType
from familybank.modules.ledger.models import Transaction, TransactionType
from familybank.modules.notifications.services import EVENT_CASH_OUT, DomainEvent, EmitDomainEvent

logger = logging.getLogger("familybank.ledger")


def _CoerceJarType(value: JarType | str) -> JarType:
    try:
        return JarType(value)
    except ValueError as exc:
        raise ValidationFailed(f"Unknown jar type: {value}") from exc


def ReadJarBalance(db: Session, account_id: int, jar_type: JarType) -> int:
    row = (
        db.query(Balance.Amount)
        .filter(Balance.AccountId == account_id, Balance.JarType == jar_type.value)
        .first()
    )
    if row is None:
        raise AccountNotFound(f"Account {account_id} has no {jar_type.value} jar")
    return int(row.Amount or 0)


def ApplyJarDelta(
    db: Session,
    *,
    account_id: int,
    jar_type: JarType,
    delta: int,
    transaction_type: TransactionType,
    reference_type: str | None = None,
    reference_id: int | None = None,
    description: str | None = None,
    actor_user_id: int | None = None,
    clock: Clock | None = None,
) -> Transaction:
    """Move ``delta`` tokens into (or out of) one jar and log it.

    Must run inside ``Atomic``; it only flushes.
    """
    now = (clock or GetClock()).Now()
    statement = (
        update(Balance)
        .where(Balance.AccountId == account_id, Balance.JarType == jar_type.value)
        .values(Amount=Balance.Amount + delta, UpdatedAt=now)
        .execution_options(synchronize_session=False)
    )
    if delta < 0:
        statement = statement.where(Balance.Amount >= -delta)

    result = db.execute(statement)
    if result.rowcount != 1:
        if delta < 0:
            ReadJarBalance(db, account_id, jar_type)
            raise InsufficientFunds(
                f"Insufficient balance in {jar_type.value} jar for {-delta} tokens"
            )
        raise AccountNotFound(f"Account {account_id} has no {jar_type.value} jar")

    entry = Transaction(
        AccountId=account_id,
        JarType=jar_type.value,
        Amount=delta,
        TransactionType=transaction_type.value,
        ReferenceType=reference_type,
        ReferenceId=reference_id,
        Description=description,
        CreatedByUserId=actor_user_id,
        CreatedAt=now,
    )
    db.add(entry)
    db.flush()
    return entry


def AdjustJar(
    db: Session,
    *,
    account_id: int,
    jar_type: JarType | str,
    delta: int,
    description: str | None = None,
    actor_user_id: int | None = None,
    clock: Clock | None = None,
) -> Transaction:
    jar = _CoerceJarType(jar_type)
    if delta == 0:
        raise ValidationFailed("Adjustment must not be zero")
    with Atomic(db):
        entry = ApplyJarDelta(
            db,
            account_id=account_id,
            jar_type=jar,
            delta=delta,
            transaction_type=TransactionType.MANUAL_ADJUSTMENT,
            description=description,
            actor_user_id=actor_user_id,
            clock=clock,
        )
    logger.info("manual adjustment account_id=%s jar=%s delta=%s", account_id, jar.value, delta)
    return entry


def CashOut(
    db: Session,
    *,
    account_id: int,
    jar_type: JarType | str,
    amount: int,
    description: str | None = None,
    actor_user_id: int | None = None,
    clock: Clock | None = None,
) -> Transaction:
    """Debit a non-wishlist jar for money handed over outside the app."""
    jar = _CoerceJarType(jar_type)
    if jar not in CASH_OUT_JAR_TYPES:
        raise ValidationFailed("Cash-out is not allowed from the WISHLIST jar")
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValidationFailed("Cash-out amount must be a positive number of tokens")

    with Atomic(db):
        entry = ApplyJarDelta(
            db,
            account_id=account_id,
            jar_type=jar,
            delta=-amount,
            transaction_type=TransactionType.MANUAL_ADJUSTMENT,
            description=description or "Cash out",
            actor_user_id=actor_user_id,
            clock=clock,
        )
    logger.info("cash out account_id=%s jar=%s amount=%s", account_id, jar.value, amount)
    EmitDomainEvent(
        db,
        DomainEvent(
            AccountId=account_id,
            Kind=EVENT_CASH_OUT,
            Amount=amount,
            ReferenceId=entry.Id,
            OccurredAt=entry.CreatedAt,
        ),
        clock,
    )
    return entry
