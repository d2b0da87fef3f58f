"""Splitting an income amount across an account's jars.

``ComputeJarShares`` is pure: each jar gets
``round_half_up(amount * pct / 100)``, capped so the running total never
passes ``amount``, and the last jar in ``JarType`` order with a non-zero
percentage takes the remainder. A 0% jar always gets 0. The shares always
sum to ``amount`` and none is negative.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from familybank.core.clock import Clock
from familybank.core.errors import ValidationFailed
from familybank.core.money import RoundHalfUpDiv
from familybank.db import Atomic
from familybank.modules.accounts.models import JarType
from familybank.modules.accounts.services.jar_service import JarAllocation, LoadAllocation
from familybank.modules.ledger.models import Transaction, TransactionType
from familybank.modules.ledger.services.balance_service import ApplyJarDelta

logger = logging.getLogger("familybank.ledger")


def ComputeJarShares(amount: int, allocation: JarAllocation) -> list[tuple[JarType, int]]:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise ValidationFailed("Amount must be a non-negative number of tokens")

    shares: list[tuple[JarType, int]] = []
    allocated = 0
    funded = [index for index, (_, percentage) in enumerate(allocation.Percentages) if percentage > 0]
    last_index = funded[-1] if funded else -1
    for index, (jar_type, percentage) in enumerate(allocation.Percentages):
        if percentage <= 0:
            share = 0
        elif index == last_index:
            share = amount - allocated
        else:
            share = min(RoundHalfUpDiv(amount * percentage, 100), amount - allocated)
        allocated += share
        shares.append((jar_type, share))
    return shares


def SplitIntoJars(
    db: Session,
    account_id: int,
    amount: int,
    transaction_type: TransactionType,
    *,
    reference_type: str | None = None,
    reference_id: int | None = None,
    description: str | None = None,
    actor_user_id: int | None = None,
    clock: Clock | None = None,
) -> list[Transaction]:
    """Credit ``amount`` tokens across all jars of an account.

    Writes one ``Transaction`` per jar, zero shares included, so the split is
    visible in the ledger exactly as it was computed. Joins an enclosing
    ``Atomic`` block when there is one.
    """
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValidationFailed("Amount must be a positive number of tokens")

    allocation = LoadAllocation(db, account_id)
    shares = ComputeJarShares(amount, allocation)

    entries: list[Transaction] = []
    with Atomic(db):
        for jar_type, share in shares:
            entries.append(
                ApplyJarDelta(
                    db,
                    account_id=account_id,
                    jar_type=jar_type,
                    delta=share,
                    transaction_type=transaction_type,
                    reference_type=reference_type,
                    reference_id=reference_id,
                    description=description,
                    actor_user_id=actor_user_id,
                    clock=clock,
                )
            )

    logger.info(
        "split account_id=%s type=%s amount=%s shares=%s",
        account_id,
        transaction_type.value,
        amount,
        ",".join(f"{jar_type.value}={share}" for jar_type, share in shares),
    )
    return entries
