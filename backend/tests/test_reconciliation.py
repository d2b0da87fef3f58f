from datetime import timedelta

from conftest import Fund
from familybank.modules.accounts.models import Balance, JarType
from familybank.modules.ledger.models import TransactionType
from familybank.modules.ledger.services.allocation_service import SplitIntoJars
from familybank.modules.ledger.services.balance_service import CashOut
from familybank.modules.ledger.services.reconciliation_service import (
    ListTransactions,
    ReconcileAccount,
    SummarizeActivity,
)


def test_balances_match_ledger_after_mixed_activity(db, account, clock):
    SplitIntoJars(db, account.Id, 37, TransactionType.CHORE_REWARD, clock=clock)
    SplitIntoJars(db, account.Id, 50, TransactionType.ALLOWANCE_SPLIT, clock=clock)
    CashOut(db, account_id=account.Id, jar_type=JarType.TOYS, amount=5, clock=clock)

    report = ReconcileAccount(db, account.Id)

    assert report.IsConsistent
    assert sum(jar.Balance for jar in report.Jars) == 82


def test_reconcile_reports_drift(db, account, clock):
    Fund(db, account.Id, JarType.SHOPPING, 40, clock)
    db.query(Balance).filter(Balance.AccountId == account.Id, Balance.JarType == JarType.SHOPPING.value).update(
        {"Amount": 45}
    )
    db.commit()

    report = ReconcileAccount(db, account.Id)

    assert not report.IsConsistent
    drift = {jar.JarType: jar.Difference for jar in report.Jars if jar.Difference}
    assert drift == {JarType.SHOPPING: 5}


def test_list_transactions_filters_by_jar_and_type(db, account, clock):
    SplitIntoJars(db, account.Id, 20, TransactionType.CHORE_REWARD, clock=clock)
    clock.Advance(timedelta(minutes=1))
    CashOut(db, account_id=account.Id, jar_type=JarType.TOYS, amount=2, clock=clock)

    toys = ListTransactions(db, account.Id, jar_type=JarType.TOYS)
    assert [row.Amount for row in toys] == [-2, 4]

    rewards = ListTransactions(db, account.Id, transaction_type=TransactionType.CHORE_REWARD)
    assert len(rewards) == 5
    assert len(ListTransactions(db, account.Id, limit=3)) == 3


def test_summarize_activity_splits_earned_and_spent(db, account, clock):
    SplitIntoJars(db, account.Id, 20, TransactionType.CHORE_REWARD, clock=clock)
    clock.Advance(timedelta(days=2))
    since = clock.Now()
    SplitIntoJars(db, account.Id, 10, TransactionType.ALLOWANCE_SPLIT, clock=clock)
    CashOut(db, account_id=account.Id, jar_type=JarType.BOOKS, amount=3, clock=clock)

    everything = SummarizeActivity(db, account.Id)
    assert everything.TotalEarned == 30
    assert everything.TotalSpent == 3
    assert everything.EarnedByType == {
        TransactionType.CHORE_REWARD.value: 20,
        TransactionType.ALLOWANCE_SPLIT.value: 10,
    }
    assert everything.SpentByJar == {JarType.BOOKS.value: 3}

    recent = SummarizeActivity(db, account.Id, since=since)
    assert recent.TotalEarned == 10
    assert recent.EarnedByType == {TransactionType.ALLOWANCE_SPLIT.value: 10}
