import pytest

from conftest import Fund
from familybank.core.errors import EntityNotFound, InsufficientFunds, InvalidStateTransition, ValidationFailed
from familybank.modules.accounts.models import JarType
from familybank.modules.accounts.services.jar_service import LoadBalances
from familybank.modules.ledger.models import Transaction, TransactionType
from familybank.modules.wishlist.models import WishlistItem
from familybank.modules.wishlist.services import (
    ApproveAndPurchase,
    ComputeProgress,
    CreateItem,
    DeleteOwnItem,
    DenyItem,
    GetItem,
    ListItems,
    UpdateItem,
)


def test_purchase_with_insufficient_savings_changes_nothing(db, account, clock):
    Fund(db, account.Id, JarType.WISHLIST, 100, clock)
    item = CreateItem(db, account.Id, title="Lego set", target_amount=150, clock=clock)
    ledger_rows = db.query(Transaction).count()

    with pytest.raises(InsufficientFunds):
        ApproveAndPurchase(db, item.Id, clock=clock)

    db.expire_all()
    item = GetItem(db, item.Id)
    assert not item.IsPurchased
    assert not item.ApprovedByParent
    assert LoadBalances(db, account.Id)[JarType.WISHLIST] == 100
    assert db.query(Transaction).count() == ledger_rows


def test_purchase_debits_wishlist_jar_and_marks_item(db, account, clock):
    Fund(db, account.Id, JarType.WISHLIST, 200, clock)
    item = CreateItem(db, account.Id, title="Lego set", target_amount=150, clock=clock)

    item = ApproveAndPurchase(db, item.Id, actor_user_id=1, clock=clock)

    assert item.IsPurchased
    assert item.ApprovedByParent
    assert item.PurchasedAt == clock.Now()
    assert LoadBalances(db, account.Id)[JarType.WISHLIST] == 50
    spend = db.query(Transaction).filter(Transaction.TransactionType == TransactionType.WISHLIST_SPEND.value).one()
    assert spend.Amount == -150
    assert spend.JarType == JarType.WISHLIST.value
    assert spend.ReferenceId == item.Id
    assert spend.Description == "Purchased: Lego set"


def test_purchase_twice_debits_once(db, account, clock):
    Fund(db, account.Id, JarType.WISHLIST, 500, clock)
    item = CreateItem(db, account.Id, title="Bike", target_amount=150, clock=clock)
    ApproveAndPurchase(db, item.Id, clock=clock)

    with pytest.raises(InvalidStateTransition):
        ApproveAndPurchase(db, item.Id, clock=clock)
    assert LoadBalances(db, account.Id)[JarType.WISHLIST] == 350


def test_purchase_only_draws_from_wishlist_jar(db, account, clock):
    Fund(db, account.Id, JarType.TOYS, 500, clock)
    item = CreateItem(db, account.Id, title="Bike", target_amount=150, clock=clock)

    with pytest.raises(InsufficientFunds):
        ApproveAndPurchase(db, item.Id, clock=clock)
    assert LoadBalances(db, account.Id)[JarType.TOYS] == 500


def test_deny_removes_open_item(db, account, clock):
    item = CreateItem(db, account.Id, title="Drone", target_amount=900, clock=clock)
    item_id = item.Id

    DenyItem(db, item_id)

    assert db.query(WishlistItem).filter(WishlistItem.Id == item_id).first() is None


def test_deny_purchased_item_is_rejected(db, account, clock):
    Fund(db, account.Id, JarType.WISHLIST, 150, clock)
    item = CreateItem(db, account.Id, title="Bike", target_amount=150, clock=clock)
    ApproveAndPurchase(db, item.Id, clock=clock)

    with pytest.raises(InvalidStateTransition):
        DenyItem(db, item.Id)


def test_child_cannot_edit_or_delete_purchased_item(db, account, clock):
    Fund(db, account.Id, JarType.WISHLIST, 150, clock)
    item = CreateItem(db, account.Id, title="Bike", target_amount=150, clock=clock)
    ApproveAndPurchase(db, item.Id, clock=clock)

    with pytest.raises(InvalidStateTransition):
        UpdateItem(db, account.Id, item.Id, title="Faster bike", clock=clock)
    with pytest.raises(InvalidStateTransition):
        DeleteOwnItem(db, account.Id, item.Id)


def test_items_are_scoped_to_their_account(db, account, clock):
    item = CreateItem(db, account.Id, title="Kite", target_amount=40, clock=clock)
    with pytest.raises(EntityNotFound):
        UpdateItem(db, account.Id + 1, item.Id, title="Mine now", clock=clock)
    with pytest.raises(EntityNotFound):
        DeleteOwnItem(db, account.Id + 1, item.Id)


def test_create_item_validates_input(db, account, clock):
    with pytest.raises(ValidationFailed):
        CreateItem(db, account.Id, title="  ", target_amount=10, clock=clock)
    with pytest.raises(ValidationFailed):
        CreateItem(db, account.Id, title="Kite", target_amount=0, clock=clock)


def test_update_item_changes_fields(db, account, clock):
    item = CreateItem(db, account.Id, title="Kite", target_amount=40, description="Red", clock=clock)

    item = UpdateItem(db, account.Id, item.Id, target_amount=60, description=None, clock=clock)

    assert item.TargetAmount == 60
    assert item.Description is None
    assert item.Title == "Kite"


def test_progress_is_capped_at_100():
    assert ComputeProgress(0, 150) == 0
    assert ComputeProgress(75, 150) == 50
    assert ComputeProgress(300, 150) == 100
    assert ComputeProgress(-5, 150) == 0


def test_list_items_reports_progress_and_pending_filter(db, account, clock):
    Fund(db, account.Id, JarType.WISHLIST, 60, clock)
    cheap = CreateItem(db, account.Id, title="Book", target_amount=50, clock=clock)
    pricey = CreateItem(db, account.Id, title="Bike", target_amount=120, clock=clock)

    progress = {entry.Item.Id: entry for entry in ListItems(db, account.Id)}
    assert progress[cheap.Id].CanAfford
    assert progress[cheap.Id].ProgressPercent == 100
    assert not progress[pricey.Id].CanAfford
    assert progress[pricey.Id].ProgressPercent == 50

    ApproveAndPurchase(db, cheap.Id, clock=clock)
    pending = ListItems(db, account.Id, pending_only=True)
    assert [entry.Item.Id for entry in pending] == [pricey.Id]
