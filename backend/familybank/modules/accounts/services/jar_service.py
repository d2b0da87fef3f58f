"""Account setup and jar configuration.

Jars and zero balances are created together with the account, and the only
way to change a jar afterwards is ``UpdateJarPercentages``, which validates the
whole set through ``JarAllocation`` before touching any row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

from sqlalchemy.orm import Session

from familybank.core.clock import Clock, GetClock
from familybank.core.errors import AccountNotFound, InvalidAllocation, ValidationFailed
from familybank.db import Atomic
from familybank.modules.accounts.models import Account, Balance, Jar, JarType

logger = logging.getLogger("familybank.accounts")

DEFAULT_JAR_PERCENTAGES: dict[JarType, int] = {
    JarType.TOYS: 30,
    JarType.BOOKS: 20,
    JarType.SHOPPING: 20,
    JarType.CHARITY: 10,
    JarType.WISHLIST: 20,
}


def _CoerceJarType(value: JarType | str) -> JarType:
    try:
        return JarType(value)
    except ValueError as exc:
        raise ValidationFailed(f"Unknown jar type: {value}") from exc


@dataclass(frozen=True)
class JarAllocation:
    """A complete, validated set of jar percentages for one account."""

    Percentages: tuple[tuple[JarType, int], ...]

    @classmethod
    def FromMapping(cls, values: Mapping[JarType | str, int]) -> "JarAllocation":
        normalized: dict[JarType, int] = {}
        for key, value in values.items():
            jar_type = _CoerceJarType(key)
            if jar_type in normalized:
                raise InvalidAllocation(f"Duplicate jar type: {jar_type.value}")
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidAllocation(f"Percentage for {jar_type.value} must be an integer")
            normalized[jar_type] = value
        return cls(Percentages=tuple((jar_type, normalized[jar_type]) for jar_type in JarType if jar_type in normalized))

    def __post_init__(self) -> None:
        seen = [jar_type for jar_type, _ in self.Percentages]
        missing = [jar_type.value for jar_type in JarType if jar_type not in seen]
        if missing:
            raise InvalidAllocation(f"Missing jars: {', '.join(missing)}")
        if len(seen) != len(set(seen)):
            raise InvalidAllocation("Duplicate jar types")
        for jar_type, percentage in self.Percentages:
            if percentage < 0 or percentage > 100:
                raise InvalidAllocation(f"Percentage for {jar_type.value} must be between 0 and 100")
        total = sum(percentage for _, percentage in self.Percentages)
        if total != 100:
            raise InvalidAllocation(f"Jar percentages must total exactly 100 (got {total})")

    def AsDict(self) -> dict[JarType, int]:
        return dict(self.Percentages)


def GetAccount(db: Session, account_id: int) -> Account:
    account = db.query(Account).filter(Account.Id == account_id).first()
    if not account:
        raise AccountNotFound(f"Account {account_id} not found")
    return account


def GetParentAccount(db: Session, parent_user_id: int, account_id: int) -> Account:
    account = (
        db.query(Account)
        .filter(Account.Id == account_id, Account.ParentUserId == parent_user_id)
        .first()
    )
    if not account:
        raise AccountNotFound(f"Account {account_id} not found")
    return account


def ListParentAccounts(db: Session, parent_user_id: int) -> list[Account]:
    return (
        db.query(Account)
        .filter(Account.ParentUserId == parent_user_id)
        .order_by(Account.Name.asc(), Account.Id.asc())
        .all()
    )


def CreateAccount(
    db: Session,
    *,
    parent_user_id: int,
    name: str,
    age: int | None = None,
    percentages: Mapping[JarType | str, int] | None = None,
    clock: Clock | None = None,
) -> Account:
    allocation = JarAllocation.FromMapping(percentages or DEFAULT_JAR_PERCENTAGES)
    if not (name or "").strip():
        raise ValidationFailed("Name is required")
    now = (clock or GetClock()).Now()

    with Atomic(db):
        account = Account(
            ParentUserId=parent_user_id,
            Name=name.strip(),
            Age=age,
            CreatedAt=now,
            UpdatedAt=now,
        )
        db.add(account)
        db.flush()
        for jar_type, percentage in allocation.Percentages:
            db.add(Jar(AccountId=account.Id, JarType=jar_type.value, Percentage=percentage, CreatedAt=now))
            db.add(Balance(AccountId=account.Id, JarType=jar_type.value, Amount=0, UpdatedAt=now))

    db.refresh(account)
    logger.info("account created account_id=%s parent_user_id=%s", account.Id, parent_user_id)
    return account


def UpdateAccountProfile(
    db: Session,
    account: Account,
    *,
    name: str | None = None,
    age: int | None = None,
    daily_spend_limit: int | None = None,
    per_transaction_limit: int | None = None,
    clock: Clock | None = None,
) -> Account:
    if name is not None and not name.strip():
        raise ValidationFailed("Name is required")
    with Atomic(db):
        if name is not None:
            account.Name = name.strip()
        if age is not None:
            account.Age = age
        if daily_spend_limit is not None:
            account.DailySpendLimit = daily_spend_limit
        if per_transaction_limit is not None:
            account.PerTransactionLimit = per_transaction_limit
        account.UpdatedAt = (clock or GetClock()).Now()
    db.refresh(account)
    return account


def DeleteAccount(db: Session, account_id: int) -> None:
    with Atomic(db):
        deleted = db.query(Account).filter(Account.Id == account_id).delete(synchronize_session=False)
        if not deleted:
            raise AccountNotFound(f"Account {account_id} not found")
    logger.info("account deleted account_id=%s", account_id)


def LoadJars(db: Session, account_id: int) -> list[Jar]:
    jars = db.query(Jar).filter(Jar.AccountId == account_id).all()
    order = {jar_type.value: index for index, jar_type in enumerate(JarType)}
    return sorted(jars, key=lambda jar: order.get(jar.JarType, len(order)))


def LoadAllocation(db: Session, account_id: int) -> JarAllocation:
    jars = LoadJars(db, account_id)
    if not jars:
        raise AccountNotFound(f"Account {account_id} has no configured jars")
    return JarAllocation.FromMapping({jar.JarType: jar.Percentage for jar in jars})


def UpdateJarPercentages(
    db: Session,
    account_id: int,
    percentages: Mapping[JarType | str, int],
) -> list[Jar]:
    allocation = JarAllocation.FromMapping(percentages)
    jars = LoadJars(db, account_id)
    if not jars:
        raise AccountNotFound(f"Account {account_id} has no configured jars")

    wanted = allocation.AsDict()
    with Atomic(db):
        for jar in jars:
            jar.Percentage = wanted[JarType(jar.JarType)]
    logger.info(
        "jar percentages updated account_id=%s %s",
        account_id,
        ",".join(f"{jar_type.value}={value}" for jar_type, value in allocation.Percentages),
    )
    return LoadJars(db, account_id)


def LoadBalances(db: Session, account_id: int) -> dict[JarType, int]:
    rows = db.query(Balance).filter(Balance.AccountId == account_id).all()
    if not rows:
        raise AccountNotFound(f"Account {account_id} has no balances")
    amounts = {JarType(row.JarType): int(row.Amount or 0) for row in rows}
    return {jar_type: amounts.get(jar_type, 0) for jar_type in JarType}
