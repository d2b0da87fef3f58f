from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from familybank.core.clock import Clock, GetClock
from familybank.core.errors import EntityNotFound, InvalidStateTransition, ValidationFailed
from familybank.db import Atomic
from familybank.modules.accounts.models import JarType
from familybank.modules.accounts.services.jar_service import GetAccount
from familybank.modules.ledger.models import REFERENCE_WISHLIST_ITEM, TransactionType
from familybank.modules.ledger.services.balance_service import ApplyJarDelta, ReadJarBalance
from familybank.modules.notifications.services import EVENT_WISHLIST_PURCHASED, DomainEvent, EmitDomainEvent
from familybank.modules.wishlist.models import WishlistItem

logger = logging.getLogger("familybank.wishlist")

_UNSET = object()


@dataclass(frozen=True)
class WishlistProgress:
    Item: WishlistItem
    Saved: int
    ProgressPercent: int
    CanAfford: bool


def _ValidateTarget(target_amount: int) -> None:
    if isinstance(target_amount, bool) or not isinstance(target_amount, int) or target_amount <= 0:
        raise ValidationFailed("Target amount must be a positive number of tokens")


def GetItem(db: Session, item_id: int) -> WishlistItem:
    item = db.query(WishlistItem).filter(WishlistItem.Id == item_id).first()
    if not item:
        raise EntityNotFound(f"Wishlist item {item_id} not found")
    return item


def _GetOwnItem(db: Session, account_id: int, item_id: int) -> WishlistItem:
    item = GetItem(db, item_id)
    if item.AccountId != account_id:
        raise EntityNotFound(f"Wishlist item {item_id} not found")
    return item


def _RequireOpen(item: WishlistItem, action: str) -> None:
    if item.IsPurchased or item.ApprovedByParent:
        raise InvalidStateTransition(f"Cannot {action} wishlist item {item.Id}; it has already been purchased")


def ComputeProgress(saved: int, target: int) -> int:
    if target <= 0:
        return 0
    return min(100, (max(saved, 0) * 100) // target)


def ListItems(
    db: Session,
    account_id: int,
    *,
    pending_only: bool = False,
) -> list[WishlistProgress]:
    query = db.query(WishlistItem).filter(WishlistItem.AccountId == account_id)
    if pending_only:
        query = query.filter(
            WishlistItem.ApprovedByParent == False,  # noqa: E712
            WishlistItem.IsPurchased == False,  # noqa: E712
        )
    items = query.order_by(WishlistItem.CreatedAt.desc(), WishlistItem.Id.desc()).all()
    saved = ReadJarBalance(db, account_id, JarType.WISHLIST)
    return [
        WishlistProgress(
            Item=item,
            Saved=saved,
            ProgressPercent=100 if item.IsPurchased else ComputeProgress(saved, item.TargetAmount),
            CanAfford=not item.IsPurchased and saved >= item.TargetAmount,
        )
        for item in items
    ]


def CreateItem(
    db: Session,
    account_id: int,
    *,
    title: str,
    target_amount: int,
    description: str | None = None,
    clock: Clock | None = None,
) -> WishlistItem:
    if not (title or "").strip():
        raise ValidationFailed("Title is required")
    _ValidateTarget(target_amount)
    GetAccount(db, account_id)

    now = (clock or GetClock()).Now()
    with Atomic(db):
        item = WishlistItem(
            AccountId=account_id,
            Title=title.strip(),
            Description=description,
            TargetAmount=target_amount,
            ApprovedByParent=False,
            IsPurchased=False,
            CreatedAt=now,
            UpdatedAt=now,
        )
        db.add(item)
    db.refresh(item)
    logger.info("wishlist item created item_id=%s account_id=%s target=%s", item.Id, account_id, target_amount)
    return item


def UpdateItem(
    db: Session,
    account_id: int,
    item_id: int,
    *,
    title: str | None = None,
    description=_UNSET,
    target_amount: int | None = None,
    clock: Clock | None = None,
) -> WishlistItem:
    item = _GetOwnItem(db, account_id, item_id)
    _RequireOpen(item, "edit")
    if title is not None and not title.strip():
        raise ValidationFailed("Title is required")
    if target_amount is not None:
        _ValidateTarget(target_amount)

    with Atomic(db):
        if title is not None:
            item.Title = title.strip()
        if description is not _UNSET:
            item.Description = description
        if target_amount is not None:
            item.TargetAmount = target_amount
        item.UpdatedAt = (clock or GetClock()).Now()
    db.refresh(item)
    return item


def DeleteOwnItem(db: Session, account_id: int, item_id: int) -> None:
    item = _GetOwnItem(db, account_id, item_id)
    _RequireOpen(item, "delete")
    with Atomic(db):
        db.delete(item)
    logger.info("wishlist item removed item_id=%s account_id=%s", item_id, account_id)


def ApproveAndPurchase(
    db: Session,
    item_id: int,
    *,
    actor_user_id: int | None = None,
    clock: Clock | None = None,
) -> WishlistItem:
    """Approve an item and pay for it from the WISHLIST jar in one step."""
    clock = clock or GetClock()
    item = GetItem(db, item_id)
    _RequireOpen(item, "approve")
    account_id = item.AccountId
    amount = item.TargetAmount
    title = item.Title

    now = clock.Now()
    with Atomic(db):
        updated = (
            db.query(WishlistItem)
            .filter(
                WishlistItem.Id == item_id,
                WishlistItem.ApprovedByParent == False,  # noqa: E712
                WishlistItem.IsPurchased == False,  # noqa: E712
            )
            .update(
                {"ApprovedByParent": True, "IsPurchased": True, "PurchasedAt": now, "UpdatedAt": now},
                synchronize_session=False,
            )
        )
        if updated != 1:
            raise InvalidStateTransition(f"Wishlist item {item_id} has already been purchased")
        ApplyJarDelta(
            db,
            account_id=account_id,
            jar_type=JarType.WISHLIST,
            delta=-amount,
            transaction_type=TransactionType.WISHLIST_SPEND,
            reference_type=REFERENCE_WISHLIST_ITEM,
            reference_id=item_id,
            description=f"Purchased: {title}",
            actor_user_id=actor_user_id,
            clock=clock,
        )
    db.refresh(item)
    logger.info("wishlist item purchased item_id=%s account_id=%s amount=%s", item_id, account_id, amount)
    EmitDomainEvent(
        db,
        DomainEvent(
            AccountId=account_id,
            Kind=EVENT_WISHLIST_PURCHASED,
            Amount=amount,
            ReferenceId=item_id,
            OccurredAt=now,
        ),
        clock,
    )
    return item


def DenyItem(db: Session, item_id: int) -> None:
    item = GetItem(db, item_id)
    if item.IsPurchased:
        raise InvalidStateTransition(f"Wishlist item {item_id} has already been purchased")
    account_id = item.AccountId
    with Atomic(db):
        deleted = (
            db.query(WishlistItem)
            .filter(WishlistItem.Id == item_id, WishlistItem.IsPurchased == False)  # noqa: E712
            .delete(synchronize_session=False)
        )
        if deleted != 1:
            raise InvalidStateTransition(f"Wishlist item {item_id} has already been purchased")
    logger.info("wishlist item denied item_id=%s account_id=%s", item_id, account_id)
