from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Unicode

from familybank.db import Base


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_read_created", "UserId", "IsRead", "CreatedAt"),
    )

    Id = Column(Integer, primary_key=True, index=True)
    UserId = Column(Integer, nullable=False, index=True)
    AccountId = Column(Integer, ForeignKey("accounts.Id", ondelete="CASCADE"), nullable=False, index=True)
    Kind = Column(String(40), nullable=False)
    Title = Column(Unicode(160), nullable=False)
    Body = Column(Unicode(400))
    Amount = Column(Integer)
    ReferenceId = Column(Integer)
    IsRead = Column(Boolean, nullable=False, default=False)
    ReadAt = Column(DateTime(timezone=True))
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
