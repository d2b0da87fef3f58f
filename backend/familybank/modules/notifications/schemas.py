from datetime import datetime

from pydantic import BaseModel


class NotificationOut(BaseModel):
    Id: int
    AccountId: int
    Kind: str
    Title: str
    Body: str | None = None
    Amount: int | None = None
    ReferenceId: int | None = None
    IsRead: bool
    ReadAt: datetime | None = None
    CreatedAt: datetime


class NotificationListResponse(BaseModel):
    Notifications: list[NotificationOut]
    UnreadCount: int
