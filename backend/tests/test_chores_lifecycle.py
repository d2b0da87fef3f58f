import pytest

from familybank.core.errors import EntityNotFound, InvalidStateTransition, StorageFailure, ValidationFailed
from familybank.modules.accounts.services.jar_service import LoadBalances
from familybank.modules.chores.models import ChoreStatus
from familybank.modules.chores.services import lifecycle_service
from familybank.modules.chores.services.lifecycle_service import (
    ApproveChore,
    CreateChore,
    GetChore,
    RejectChore,
    SubmitChore,
    UpdateChore,
)
from familybank.modules.ledger.models import Transaction, TransactionType
from familybank.modules.ledger.services import allocation_service


def _SubmittedChore(db, account, clock, reward=25):
    chore = CreateChore(db, account.Id, title="Feed the cat", token_reward=reward, clock=clock)
    return SubmitChore(db, chore.Id, clock=clock)


def test_submit_moves_pending_to_submitted(db, account, clock):
    chore = CreateChore(db, account.Id, title="Tidy room", token_reward=10, clock=clock)
    assert chore.Status == ChoreStatus.PENDING.value

    chore = SubmitChore(db, chore.Id, account_id=account.Id, clock=clock)
    assert chore.Status == ChoreStatus.SUBMITTED.value
    assert chore.SubmittedAt == clock.Now()


def test_submit_rejects_other_account(db, account, clock):
    chore = CreateChore(db, account.Id, title="Tidy room", token_reward=10, clock=clock)
    with pytest.raises(EntityNotFound):
        SubmitChore(db, chore.Id, account_id=account.Id + 1, clock=clock)


def test_approve_pays_reward_across_jars(db, account, clock):
    chore = _SubmittedChore(db, account, clock, reward=25)

    chore = ApproveChore(db, chore.Id, actor_user_id=1, clock=clock)

    assert chore.Status == ChoreStatus.APPROVED.value
    assert chore.ApprovedAt == clock.Now()
    assert sum(LoadBalances(db, account.Id).values()) == 25
    rows = db.query(Transaction).filter(Transaction.ReferenceId == chore.Id).all()
    assert len(rows) == 5
    assert {row.TransactionType for row in rows} == {TransactionType.CHORE_REWARD.value}


def test_approve_twice_pays_once(db, account, clock):
    chore = _SubmittedChore(db, account, clock, reward=10)
    ApproveChore(db, chore.Id, clock=clock)

    with pytest.raises(InvalidStateTransition):
        ApproveChore(db, chore.Id, clock=clock)
    assert sum(LoadBalances(db, account.Id).values()) == 10


def test_approve_pending_chore_is_rejected(db, account, clock):
    chore = CreateChore(db, account.Id, title="Dishes", token_reward=10, clock=clock)
    with pytest.raises(InvalidStateTransition):
        ApproveChore(db, chore.Id, clock=clock)


def test_approve_unknown_chore(db, clock):
    with pytest.raises(EntityNotFound):
        ApproveChore(db, 4242, clock=clock)


def test_approve_failure_rolls_back_status_and_balances(db, account, clock, monkeypatch):
    chore = _SubmittedChore(db, account, clock, reward=50)
    real_apply = allocation_service.ApplyJarDelta
    calls = {"count": 0}

    def _FailingApply(*args, **kwargs):
        calls["count"] += 1
        if calls["count"] == 3:
            raise StorageFailure("store went away")
        return real_apply(*args, **kwargs)

    monkeypatch.setattr(allocation_service, "ApplyJarDelta", _FailingApply)

    with pytest.raises(StorageFailure):
        ApproveChore(db, chore.Id, clock=clock)

    db.expire_all()
    assert GetChore(db, chore.Id).Status == ChoreStatus.SUBMITTED.value
    assert sum(LoadBalances(db, account.Id).values()) == 0
    assert db.query(Transaction).count() == 0


def test_lost_race_on_status_swap_does_not_pay(db, account, clock, monkeypatch):
    chore = _SubmittedChore(db, account, clock, reward=10)

    def _AlreadyMoved(db_session, chore_id, expected, values):
        raise InvalidStateTransition(f"Chore {chore_id} is no longer {expected.value}")

    monkeypatch.setattr(lifecycle_service, "_CompareAndSwapStatus", _AlreadyMoved)
    with pytest.raises(InvalidStateTransition):
        ApproveChore(db, chore.Id, clock=clock)
    assert db.query(Transaction).count() == 0


def test_reject_returns_chore_to_pending(db, account, clock):
    chore = _SubmittedChore(db, account, clock)

    chore = RejectChore(db, chore.Id, clock=clock)

    assert chore.Status == ChoreStatus.PENDING.value
    assert chore.SubmittedAt is None


def test_reject_requires_submitted(db, account, clock):
    chore = CreateChore(db, account.Id, title="Dishes", token_reward=10, clock=clock)
    with pytest.raises(InvalidStateTransition):
        RejectChore(db, chore.Id, clock=clock)


def test_create_chore_validates_reward_and_recurrence(db, account, clock):
    with pytest.raises(ValidationFailed):
        CreateChore(db, account.Id, title="Dishes", token_reward=0, clock=clock)
    with pytest.raises(ValidationFailed):
        CreateChore(
            db,
            account.Id,
            title="Bins",
            token_reward=5,
            is_recurring=True,
            recurrence_type="weekly",
            recurrence_days=[],
            clock=clock,
        )
    with pytest.raises(ValidationFailed):
        CreateChore(
            db,
            account.Id,
            title="Bins",
            token_reward=5,
            is_recurring=True,
            recurrence_type="weekly",
            recurrence_days=[7],
            clock=clock,
        )


def test_create_weekly_chore_stores_sorted_days(db, account, clock):
    chore = CreateChore(
        db,
        account.Id,
        title="Bins",
        token_reward=5,
        is_recurring=True,
        recurrence_type="weekly",
        recurrence_days=[4, 0, 2, 2],
        clock=clock,
    )
    assert chore.RecurrenceDays == "0,2,4"


def test_update_approved_chore_is_rejected(db, account, clock):
    chore = _SubmittedChore(db, account, clock)
    ApproveChore(db, chore.Id, clock=clock)

    with pytest.raises(InvalidStateTransition):
        UpdateChore(db, chore.Id, title="Renamed", clock=clock)


def test_update_clears_recurrence_when_disabled(db, account, clock):
    chore = CreateChore(
        db,
        account.Id,
        title="Bins",
        token_reward=5,
        is_recurring=True,
        recurrence_type="weekly",
        recurrence_days=[1],
        clock=clock,
    )

    chore = UpdateChore(db, chore.Id, is_recurring=False, clock=clock)

    assert not chore.IsRecurring
    assert chore.RecurrenceType is None
    assert chore.RecurrenceDays is None
