from decimal import Decimal

import pytest

from conftest import PARENT_ID, Fund
from familybank.core.errors import InsufficientFunds, ValidationFailed
from familybank.core.money import DisplayToTokens, FormatTokens, RoundHalfUpDiv, TokensToDisplay
from familybank.modules.accounts.models import JarType
from familybank.modules.accounts.services.jar_service import LoadBalances
from familybank.modules.ledger.models import Transaction, TransactionType
from familybank.modules.ledger.services.balance_service import AdjustJar, CashOut


def test_cash_out_debits_jar_as_manual_adjustment(db, account, clock):
    Fund(db, account.Id, JarType.TOYS, 100, clock)

    entry = CashOut(db, account_id=account.Id, jar_type="TOYS", amount=40, actor_user_id=PARENT_ID, clock=clock)

    assert entry.Amount == -40
    assert entry.TransactionType == TransactionType.MANUAL_ADJUSTMENT.value
    assert entry.Description == "Cash out"
    assert entry.CreatedByUserId == PARENT_ID
    assert LoadBalances(db, account.Id)[JarType.TOYS] == 60


def test_cash_out_from_wishlist_jar_is_rejected(db, account, clock):
    Fund(db, account.Id, JarType.WISHLIST, 100, clock)

    with pytest.raises(ValidationFailed):
        CashOut(db, account_id=account.Id, jar_type=JarType.WISHLIST, amount=10, clock=clock)
    assert LoadBalances(db, account.Id)[JarType.WISHLIST] == 100


def test_cash_out_over_balance_leaves_jar_untouched(db, account, clock):
    Fund(db, account.Id, JarType.BOOKS, 30, clock)
    before = db.query(Transaction).count()

    with pytest.raises(InsufficientFunds):
        CashOut(db, account_id=account.Id, jar_type=JarType.BOOKS, amount=31, clock=clock)
    assert LoadBalances(db, account.Id)[JarType.BOOKS] == 30
    assert db.query(Transaction).count() == before


@pytest.mark.parametrize("amount", [0, -10, 2.5])
def test_cash_out_rejects_non_positive_or_fractional_amount(db, account, clock, amount):
    with pytest.raises(ValidationFailed):
        CashOut(db, account_id=account.Id, jar_type=JarType.TOYS, amount=amount, clock=clock)


def test_cash_out_unknown_jar_type(db, account, clock):
    with pytest.raises(ValidationFailed):
        CashOut(db, account_id=account.Id, jar_type="PIGGY", amount=10, clock=clock)


def test_adjust_jar_allows_credit_and_debit_but_not_below_zero(db, account, clock):
    AdjustJar(db, account_id=account.Id, jar_type=JarType.CHARITY, delta=25, clock=clock)
    AdjustJar(db, account_id=account.Id, jar_type=JarType.CHARITY, delta=-5, clock=clock)
    assert LoadBalances(db, account.Id)[JarType.CHARITY] == 20

    with pytest.raises(InsufficientFunds):
        AdjustJar(db, account_id=account.Id, jar_type=JarType.CHARITY, delta=-21, clock=clock)
    with pytest.raises(ValidationFailed):
        AdjustJar(db, account_id=account.Id, jar_type=JarType.CHARITY, delta=0, clock=clock)
    assert LoadBalances(db, account.Id)[JarType.CHARITY] == 20


def test_round_half_up_division():
    assert RoundHalfUpDiv(740, 100) == 7
    assert RoundHalfUpDiv(750, 100) == 8
    assert RoundHalfUpDiv(-750, 100) == -8
    with pytest.raises(ValueError):
        RoundHalfUpDiv(1, 0)


def test_display_conversions():
    assert DisplayToTokens(Decimal("2.50")) == 25
    assert DisplayToTokens("0.05") == 1
    assert DisplayToTokens(None) == 0
    assert TokensToDisplay(25) == Decimal("2.50")
    assert TokensToDisplay(0) == Decimal("0.00")
    assert FormatTokens(12345) == "$1,234.50"
