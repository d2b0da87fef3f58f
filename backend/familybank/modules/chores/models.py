from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from familybank.db import Base


class ChoreStatus(str, Enum):
    PENDING = "PENDING"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"


RECURRENCE_DAILY = "daily"
RECURRENCE_WEEKLY = "weekly"
RECURRENCE_TYPES = {RECURRENCE_DAILY, RECURRENCE_WEEKLY}


class Chore(Base):
    __tablename__ = "chores"
    __table_args__ = (
        Index("ix_chores_account_status", "AccountId", "Status"),
        Index("ix_chores_status_approved", "Status", "ApprovedAt"),
    )

    Id = Column(Integer, primary_key=True, index=True)
    AccountId = Column(Integer, ForeignKey("accounts.Id", ondelete="CASCADE"), nullable=False, index=True)
    Title = Column(String(200), nullable=False)
    Description = Column(Text)
    TokenReward = Column(Integer, nullable=False)
    Status = Column(String(20), nullable=False, default=ChoreStatus.PENDING.value)
    DueAt = Column(DateTime(timezone=True))
    SubmittedAt = Column(DateTime(timezone=True))
    ApprovedAt = Column(DateTime(timezone=True))
    IsRecurring = Column(Boolean, nullable=False, default=False)
    RecurrenceType = Column(String(20))
    RecurrenceDays = Column(String(20))
    ParentChoreId = Column(Integer, index=True)
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    UpdatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class ChoreRecurrenceRun(Base):
    __tablename__ = "chore_recurrence_runs"
    __table_args__ = (
        UniqueConstraint("TemplateChoreId", "RunDate", name="uq_chore_recurrence_runs_template_date"),
    )

    Id = Column(Integer, primary_key=True, index=True)
    AccountId = Column(Integer, ForeignKey("accounts.Id", ondelete="CASCADE"), nullable=False, index=True)
    TemplateChoreId = Column(Integer, nullable=False, index=True)
    RunDate = Column(Date, nullable=False)
    ChoreId = Column(Integer)
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
