from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    UniqueConstraint,
)

from familybank.db import Base


class Allowance(Base):
    __tablename__ = "allowances"
    __table_args__ = (UniqueConstraint("AccountId", name="uq_allowances_account"),)

    Id = Column(Integer, primary_key=True, index=True)
    AccountId = Column(Integer, ForeignKey("accounts.Id", ondelete="CASCADE"), nullable=False, index=True)
    WeeklyAmount = Column(Integer, nullable=False)
    DayOfWeek = Column(Integer, nullable=False)
    NextPaymentAt = Column(DateTime(timezone=True), nullable=False, index=True)
    IsActive = Column(Boolean, nullable=False, default=True)
    CreatedByUserId = Column(Integer)
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    UpdatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class AllowancePayment(Base):
    __tablename__ = "allowance_payments"
    __table_args__ = (
        UniqueConstraint("AllowanceId", "PeriodDate", name="uq_allowance_payments_period"),
    )

    Id = Column(Integer, primary_key=True, index=True)
    AllowanceId = Column(Integer, ForeignKey("allowances.Id", ondelete="CASCADE"), nullable=False, index=True)
    AccountId = Column(Integer, nullable=False, index=True)
    PeriodDate = Column(Date, nullable=False)
    Amount = Column(Integer, nullable=False)
    PaidAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
