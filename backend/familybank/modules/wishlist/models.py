from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text

from familybank.db import Base


class WishlistItem(Base):
    __tablename__ = "wishlist_items"

    Id = Column(Integer, primary_key=True, index=True)
    AccountId = Column(Integer, ForeignKey("accounts.Id", ondelete="CASCADE"), nullable=False, index=True)
    Title = Column(String(200), nullable=False)
    Description = Column(Text)
    TargetAmount = Column(Integer, nullable=False)
    ApprovedByParent = Column(Boolean, nullable=False, default=False)
    IsPurchased = Column(Boolean, nullable=False, default=False)
    PurchasedAt = Column(DateTime(timezone=True))
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    UpdatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
