from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from threading import Lock
from typing import Callable

from sqlalchemy.orm import Session

from familybank.core.clock import Clock, GetClock
from familybank.core.errors import EntityNotFound
from familybank.core.money import FormatTokens
from familybank.db import Atomic, InAtomic
from familybank.modules.accounts.models import Account
from familybank.modules.notifications.models import Notification

logger = logging.getLogger("familybank.notifications")

EVENT_CHORE_APPROVED = "CHORE_APPROVED"
EVENT_ALLOWANCE_PAID = "ALLOWANCE_PAID"
EVENT_WISHLIST_PURCHASED = "WISHLIST_PURCHASED"
EVENT_CASH_OUT = "CASH_OUT"


@dataclass(frozen=True)
class DomainEvent:
    AccountId: int
    Kind: str
    Amount: int
    ReferenceId: int | None = None
    OccurredAt: datetime | None = None

    def AsPayload(self) -> dict:
        payload = asdict(self)
        if self.OccurredAt is not None:
            payload["OccurredAt"] = self.OccurredAt.isoformat()
        return payload


DomainEventHandler = Callable[[DomainEvent], None]

_subscribers: list[DomainEventHandler] = []
_subscribers_lock = Lock()


def SubscribeDomainEvents(handler: DomainEventHandler) -> Callable[[], None]:
    with _subscribers_lock:
        _subscribers.append(handler)

    def _Unsubscribe() -> None:
        with _subscribers_lock:
            if handler in _subscribers:
                _subscribers.remove(handler)

    return _Unsubscribe


def ClearDomainEventSubscribers() -> None:
    with _subscribers_lock:
        _subscribers.clear()


def _BuildMessage(event: DomainEvent, account: Account) -> tuple[str, str]:
    amount = FormatTokens(event.Amount)
    if event.Kind == EVENT_CHORE_APPROVED:
        return "Chore approved", f"{account.Name} earned {amount} for a chore."
    if event.Kind == EVENT_ALLOWANCE_PAID:
        return "Weekly allowance paid", f"{amount} allowance was split across {account.Name}'s jars."
    if event.Kind == EVENT_WISHLIST_PURCHASED:
        return "Wishlist item purchased", f"{amount} was spent from {account.Name}'s WISHLIST jar."
    if event.Kind == EVENT_CASH_OUT:
        return "Cash out", f"{amount} was cashed out for {account.Name}."
    return event.Kind, f"{amount} for {account.Name}."


def _RecordNotification(db: Session, event: DomainEvent, clock: Clock) -> Notification | None:
    account = db.query(Account).filter(Account.Id == event.AccountId).first()
    if not account:
        return None
    title, body = _BuildMessage(event, account)
    record = Notification(
        UserId=account.ParentUserId,
        AccountId=account.Id,
        Kind=event.Kind,
        Title=title,
        Body=body,
        Amount=event.Amount,
        ReferenceId=event.ReferenceId,
        IsRead=False,
        CreatedAt=event.OccurredAt or clock.Now(),
    )
    with Atomic(db):
        db.add(record)
    db.refresh(record)
    return record


def EmitDomainEvent(db: Session, event: DomainEvent, clock: Clock | None = None) -> Notification | None:
    """Publish an event for a mutation that has already been committed.

    Nothing here may raise: failures are logged and the caller carries on.
    Inside an open ``Atomic`` block the inbox row joins that unit of work and
    is committed or discarded with it.
    """
    record = None
    try:
        record = _RecordNotification(db, event, clock or GetClock())
    except Exception:  # noqa: BLE001
        if not InAtomic(db):
            db.rollback()
        logger.exception("failed to record notification kind=%s account_id=%s", event.Kind, event.AccountId)

    with _subscribers_lock:
        handlers = list(_subscribers)
    for handler in handlers:
        try:
            handler(event)
        except Exception:  # noqa: BLE001
            logger.exception("domain event subscriber failed kind=%s account_id=%s", event.Kind, event.AccountId)
    return record


def ListNotifications(db: Session, user_id: int, unread_only: bool = False, limit: int = 50) -> list[Notification]:
    query = db.query(Notification).filter(Notification.UserId == user_id)
    if unread_only:
        query = query.filter(Notification.IsRead == False)  # noqa: E712
    return query.order_by(Notification.CreatedAt.desc(), Notification.Id.desc()).limit(limit).all()


def MarkNotificationRead(db: Session, user_id: int, notification_id: int, clock: Clock | None = None) -> Notification:
    record = (
        db.query(Notification)
        .filter(Notification.Id == notification_id, Notification.UserId == user_id)
        .first()
    )
    if not record:
        raise EntityNotFound(f"Notification {notification_id} not found")
    if not record.IsRead:
        record.IsRead = True
        record.ReadAt = (clock or GetClock()).Now()
        db.commit()
        db.refresh(record)
    return record


def CountUnread(db: Session, user_id: int) -> int:
    return (
        db.query(Notification)
        .filter(Notification.UserId == user_id, Notification.IsRead == False)  # noqa: E712
        .count()
    )
