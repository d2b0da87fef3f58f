from datetime import date, datetime, timedelta

from familybank.modules.chores.models import Chore, ChoreRecurrenceRun, ChoreStatus
from familybank.modules.chores.services.cleanup_service import PurgeApprovedChores
from familybank.modules.chores.services.lifecycle_service import (
    ApproveChore,
    CreateChore,
    SubmitChore,
)
from familybank.modules.chores.services.recurrence_service import (
    MaterializeRecurringChores,
    ShouldMaterializeOn,
)


def _ApprovedTemplate(db, account, clock, recurrence_type="daily", recurrence_days=None, title="Make bed"):
    chore = CreateChore(
        db,
        account.Id,
        title=title,
        token_reward=5,
        is_recurring=True,
        recurrence_type=recurrence_type,
        recurrence_days=recurrence_days,
        clock=clock,
    )
    SubmitChore(db, chore.Id, clock=clock)
    return ApproveChore(db, chore.Id, clock=clock)


def test_should_materialize_daily_every_day():
    template = Chore(RecurrenceType="daily", RecurrenceDays=None)
    assert ShouldMaterializeOn(template, date(2025, 1, 13))
    assert ShouldMaterializeOn(template, date(2025, 1, 19))


def test_should_materialize_weekly_counts_from_sunday_zero():
    template = Chore(RecurrenceType="weekly", RecurrenceDays="0,1,3")
    assert ShouldMaterializeOn(template, date(2025, 1, 19))  # Sunday
    assert ShouldMaterializeOn(template, date(2025, 1, 13))  # Monday
    assert ShouldMaterializeOn(template, date(2025, 1, 15))  # Wednesday
    assert not ShouldMaterializeOn(template, date(2025, 1, 14))  # Tuesday
    assert not ShouldMaterializeOn(template, date(2025, 1, 18))  # Saturday


def test_materialize_creates_one_pending_instance_per_template(db, account, clock):
    template = _ApprovedTemplate(db, account, clock)

    result = MaterializeRecurringChores(db, clock)

    assert result["Created"] == 1
    instances = db.query(Chore).filter(Chore.ParentChoreId == template.Id).all()
    assert len(instances) == 1
    instance = instances[0]
    assert instance.Status == ChoreStatus.PENDING.value
    assert not instance.IsRecurring
    assert instance.TokenReward == template.TokenReward
    assert instance.AccountId == account.Id


def test_materialize_twice_same_day_creates_nothing_more(db, account, clock):
    template = _ApprovedTemplate(db, account, clock)
    MaterializeRecurringChores(db, clock)

    result = MaterializeRecurringChores(db, clock)

    assert result["Created"] == 0
    assert result["Skipped"] == 1
    assert db.query(Chore).filter(Chore.ParentChoreId == template.Id).count() == 1
    assert db.query(ChoreRecurrenceRun).count() == 1


def test_materialize_next_day_creates_again(db, account, clock):
    template = _ApprovedTemplate(db, account, clock)
    MaterializeRecurringChores(db, clock)
    clock.Advance(timedelta(days=1))

    result = MaterializeRecurringChores(db, clock)

    assert result["Created"] == 1
    assert db.query(Chore).filter(Chore.ParentChoreId == template.Id).count() == 2


def test_materialize_skips_unapproved_templates_and_wrong_weekday(db, account, clock):
    CreateChore(
        db,
        account.Id,
        title="Not approved yet",
        token_reward=5,
        is_recurring=True,
        recurrence_type="daily",
        clock=clock,
    )
    # clock is a Wednesday (3)
    _ApprovedTemplate(db, account, clock, recurrence_type="weekly", recurrence_days=[1, 5], title="Bins")

    result = MaterializeRecurringChores(db, clock)

    assert result["Templates"] == 1
    assert result["Created"] == 0
    assert db.query(Chore).filter(Chore.ParentChoreId.isnot(None)).count() == 0


def _ApprovedChoreAt(db, account, clock, approved_at: datetime, **kwargs):
    chore = CreateChore(db, account.Id, title=kwargs.pop("title", "Chore"), token_reward=1, clock=clock, **kwargs)
    SubmitChore(db, chore.Id, clock=clock)
    saved = clock.Now()
    clock.Set(approved_at)
    ApproveChore(db, chore.Id, clock=clock)
    clock.Set(saved)
    return chore


def test_purge_removes_old_approved_chores_only(db, account, clock):
    old = _ApprovedChoreAt(db, account, clock, clock.Now() - timedelta(days=31), title="Old")
    recent = _ApprovedChoreAt(db, account, clock, clock.Now() - timedelta(days=5), title="Recent")
    pending = CreateChore(db, account.Id, title="Pending", token_reward=1, clock=clock)
    old_id, recent_id, pending_id = old.Id, recent.Id, pending.Id

    result = PurgeApprovedChores(db, clock, retention_days=30)

    assert result["Deleted"] == 1
    remaining = {row.Id for row in db.query(Chore).all()}
    assert old_id not in remaining
    assert recent_id in remaining
    assert pending_id in remaining


def test_purge_keeps_recurring_templates_but_removes_old_instances(db, account, clock):
    template = _ApprovedChoreAt(
        db,
        account,
        clock,
        clock.Now() - timedelta(days=60),
        title="Template",
        is_recurring=True,
        recurrence_type="daily",
    )
    template_id = template.Id
    MaterializeRecurringChores(db, clock)
    instance = db.query(Chore).filter(Chore.ParentChoreId == template_id).one()
    instance_id = instance.Id
    SubmitChore(db, instance_id, clock=clock)
    clock.Set(clock.Now() - timedelta(days=45))
    ApproveChore(db, instance_id, clock=clock)
    clock.Set(clock.Now() + timedelta(days=45))

    result = PurgeApprovedChores(db, clock, retention_days=30)

    assert result["Deleted"] == 1
    remaining = {row.Id for row in db.query(Chore).all()}
    assert template_id in remaining
    assert instance_id not in remaining
