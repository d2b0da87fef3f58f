from datetime import datetime
from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String

from familybank.db import Base


class TransactionType(str, Enum):
    CHORE_REWARD = "CHORE_REWARD"
    ALLOWANCE_SPLIT = "ALLOWANCE_SPLIT"
    WISHLIST_SPEND = "WISHLIST_SPEND"
    MANUAL_ADJUSTMENT = "MANUAL_ADJUSTMENT"


REFERENCE_CHORE = "Chore"
REFERENCE_ALLOWANCE = "Allowance"
REFERENCE_WISHLIST_ITEM = "WishlistItem"


class Transaction(Base):
    """One row per balance change. Rows are inserted, never updated."""

    __tablename__ = "transactions"
    __table_args__ = (
        Index("ix_transactions_account_created", "AccountId", "CreatedAt"),
        Index("ix_transactions_reference", "ReferenceType", "ReferenceId"),
    )

    Id = Column(Integer, primary_key=True, index=True)
    AccountId = Column(Integer, ForeignKey("accounts.Id", ondelete="CASCADE"), nullable=False, index=True)
    JarType = Column(String(20), nullable=False)
    Amount = Column(Integer, nullable=False)
    TransactionType = Column(String(40), nullable=False)
    ReferenceType = Column(String(40))
    ReferenceId = Column(Integer)
    Description = Column(String(300))
    CreatedByUserId = Column(Integer)
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
