import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from familybank.core.clock import Clock, GetClock
from familybank.core.errors import FamilyBankError
from familybank.core.http import RaiseForDomainError
from familybank.core.storage import EnsureStorageReady
from familybank.db import GetDb
from familybank.modules.auth.deps import RequireParent, UserContext
from familybank.modules.notifications.models import Notification
from familybank.modules.notifications.schemas import NotificationListResponse, NotificationOut
from familybank.modules.notifications.services import CountUnread, ListNotifications, MarkNotificationRead

router = APIRouter(
    prefix="/api/notifications",
    tags=["notifications"],
    dependencies=[Depends(EnsureStorageReady)],
)
logger = logging.getLogger("familybank.notifications")


def _BuildNotificationOut(record: Notification) -> NotificationOut:
    return NotificationOut(
        Id=record.Id,
        AccountId=record.AccountId,
        Kind=record.Kind,
        Title=record.Title,
        Body=record.Body,
        Amount=record.Amount,
        ReferenceId=record.ReferenceId,
        IsRead=bool(record.IsRead),
        ReadAt=record.ReadAt,
        CreatedAt=record.CreatedAt,
    )


@router.get("", response_model=NotificationListResponse)
def GetNotifications(
    unread_only: bool = False,
    limit: int = 50,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireParent()),
) -> NotificationListResponse:
    records = ListNotifications(db, user.Id, unread_only=unread_only, limit=max(1, min(limit, 200)))
    return NotificationListResponse(
        Notifications=[_BuildNotificationOut(record) for record in records],
        UnreadCount=CountUnread(db, user.Id),
    )


@router.post("/{notification_id}/read", response_model=NotificationOut)
def ReadNotification(
    notification_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireParent()),
    clock: Clock = Depends(GetClock),
) -> NotificationOut:
    try:
        return _BuildNotificationOut(MarkNotificationRead(db, user.Id, notification_id, clock))
    except FamilyBankError as exc:
        RaiseForDomainError(exc)
