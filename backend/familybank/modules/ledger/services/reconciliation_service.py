from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.orm import Session

from familybank.modules.accounts.models import JarType
from familybank.modules.accounts.services.jar_service import LoadBalances
from familybank.modules.ledger.models import Transaction, TransactionType

logger = logging.getLogger("familybank.ledger")


@dataclass
class JarReconciliation:
    JarType: JarType
    Balance: int
    LedgerTotal: int

    @property
    def Difference(self) -> int:
        return self.Balance - self.LedgerTotal


@dataclass
class ReconciliationReport:
    AccountId: int
    Jars: list[JarReconciliation] = field(default_factory=list)

    @property
    def IsConsistent(self) -> bool:
        return all(jar.Difference == 0 for jar in self.Jars)


@dataclass
class ActivitySummary:
    AccountId: int
    Since: datetime | None
    EarnedByType: dict[str, int]
    SpentByJar: dict[str, int]
    TotalEarned: int
    TotalSpent: int


def ListTransactions(
    db: Session,
    account_id: int,
    *,
    jar_type: JarType | None = None,
    transaction_type: TransactionType | None = None,
    limit: int = 100,
) -> list[Transaction]:
    query = db.query(Transaction).filter(Transaction.AccountId == account_id)
    if jar_type is not None:
        query = query.filter(Transaction.JarType == jar_type.value)
    if transaction_type is not None:
        query = query.filter(Transaction.TransactionType == transaction_type.value)
    return query.order_by(Transaction.CreatedAt.desc(), Transaction.Id.desc()).limit(limit).all()


def ReconcileAccount(db: Session, account_id: int) -> ReconciliationReport:
    """Compare each stored balance with the sum of its transaction log."""
    balances = LoadBalances(db, account_id)
    rows = (
        db.query(Transaction.JarType, func.coalesce(func.sum(Transaction.Amount), 0))
        .filter(Transaction.AccountId == account_id)
        .group_by(Transaction.JarType)
        .all()
    )
    totals = {jar_type: int(total or 0) for jar_type, total in rows}
    report = ReconciliationReport(
        AccountId=account_id,
        Jars=[
            JarReconciliation(JarType=jar_type, Balance=balances[jar_type], LedgerTotal=totals.get(jar_type.value, 0))
            for jar_type in JarType
        ],
    )
    if not report.IsConsistent:
        logger.warning(
            "ledger drift account_id=%s %s",
            account_id,
            ",".join(f"{jar.JarType.value}={jar.Difference}" for jar in report.Jars if jar.Difference),
        )
    return report


def SummarizeActivity(db: Session, account_id: int, since: datetime | None = None) -> ActivitySummary:
    query = db.query(Transaction.TransactionType, Transaction.JarType, Transaction.Amount).filter(
        Transaction.AccountId == account_id
    )
    if since is not None:
        query = query.filter(Transaction.CreatedAt >= since)

    earned: dict[str, int] = {}
    spent: dict[str, int] = {}
    for transaction_type, jar_type, amount in query.all():
        if amount > 0:
            earned[transaction_type] = earned.get(transaction_type, 0) + amount
        elif amount < 0:
            spent[jar_type] = spent.get(jar_type, 0) - amount

    return ActivitySummary(
        AccountId=account_id,
        Since=since,
        EarnedByType=earned,
        SpentByJar=spent,
        TotalEarned=sum(earned.values()),
        TotalSpent=sum(spent.values()),
    )
