from datetime import date, datetime

import pytest
from sqlalchemy.exc import OperationalError

from familybank.core.clock import Clock, DayOfWeek, FixedClock
from familybank.core.errors import DuplicateOperation, StorageFailure
from familybank.db import Atomic
from familybank.modules.accounts.models import Account
from familybank.modules.chores.models import ChoreRecurrenceRun


def _Account(name: str) -> Account:
    return Account(ParentUserId=1, Name=name, CreatedAt=datetime(2025, 1, 1), UpdatedAt=datetime(2025, 1, 1))


def test_nested_blocks_commit_once_at_the_outermost_level(db):
    with pytest.raises(RuntimeError):
        with Atomic(db):
            db.add(_Account("Outer"))
            with Atomic(db):
                db.add(_Account("Inner"))
            raise RuntimeError("abort after inner block")

    assert db.query(Account).count() == 0


def test_outer_block_commits_inner_work(db):
    with Atomic(db):
        with Atomic(db):
            db.add(_Account("Inner"))

    db.rollback()
    assert db.query(Account).count() == 1


def test_unique_violation_becomes_duplicate_operation(db, account):
    row = dict(AccountId=account.Id, TemplateChoreId=1, RunDate=date(2025, 1, 15), CreatedAt=datetime(2025, 1, 15))
    with Atomic(db):
        db.add(ChoreRecurrenceRun(**row))

    with pytest.raises(DuplicateOperation):
        with Atomic(db):
            db.add(ChoreRecurrenceRun(**row))
    assert db.query(ChoreRecurrenceRun).count() == 1


def test_database_error_becomes_retryable_storage_failure(db):
    with pytest.raises(StorageFailure) as exc:
        with Atomic(db):
            raise OperationalError("SELECT 1", {}, Exception("connection reset"))
    assert exc.value.Retryable


def test_clock_local_date_and_start_of_day_follow_timezone():
    clock = FixedClock(datetime(2025, 1, 15, 23, 30), tz_name="Australia/Sydney")

    # 23:30 UTC is 10:30 the next morning in Sydney
    assert clock.Today() == date(2025, 1, 16)
    assert clock.StartOfDay(date(2025, 1, 16)) == datetime(2025, 1, 15, 13, 0)


def test_clock_base_needs_a_time_source():
    with pytest.raises(TypeError):
        Clock()


def test_day_of_week_counts_from_sunday():
    assert DayOfWeek(date(2025, 1, 19)) == 0
    assert DayOfWeek(date(2025, 1, 20)) == 1
    assert DayOfWeek(date(2025, 1, 25)) == 6
