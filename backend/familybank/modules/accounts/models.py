from datetime import datetime
from enum import Enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)

from familybank.db import Base


class JarType(str, Enum):
    TOYS = "TOYS"
    BOOKS = "BOOKS"
    SHOPPING = "SHOPPING"
    CHARITY = "CHARITY"
    WISHLIST = "WISHLIST"


CASH_OUT_JAR_TYPES = frozenset(jar for jar in JarType if jar != JarType.WISHLIST)


class Account(Base):
    __tablename__ = "accounts"

    Id = Column(Integer, primary_key=True, index=True)
    ParentUserId = Column(Integer, nullable=False, index=True)
    Name = Column(String(120), nullable=False)
    Age = Column(Integer)
    DailySpendLimit = Column(Integer)
    PerTransactionLimit = Column(Integer)
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    UpdatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class Jar(Base):
    __tablename__ = "jars"
    __table_args__ = (
        UniqueConstraint("AccountId", "JarType", name="uq_jars_account_jar"),
        CheckConstraint("Percentage >= 0 AND Percentage <= 100", name="ck_jars_percentage_range"),
    )

    Id = Column(Integer, primary_key=True, index=True)
    AccountId = Column(Integer, ForeignKey("accounts.Id", ondelete="CASCADE"), nullable=False, index=True)
    JarType = Column(String(20), nullable=False)
    Percentage = Column(Integer, nullable=False)
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class Balance(Base):
    __tablename__ = "balances"
    __table_args__ = (UniqueConstraint("AccountId", "JarType", name="uq_balances_account_jar"),)

    Id = Column(Integer, primary_key=True, index=True)
    AccountId = Column(Integer, ForeignKey("accounts.Id", ondelete="CASCADE"), nullable=False, index=True)
    JarType = Column(String(20), nullable=False)
    Amount = Column(Integer, nullable=False, default=0)
    UpdatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
