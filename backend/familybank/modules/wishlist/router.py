import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from familybank.core.clock import Clock, GetClock
from familybank.core.errors import FamilyBankError
from familybank.core.http import RaiseForDomainError
from familybank.core.storage import EnsureStorageReady
from familybank.db import GetDb
from familybank.modules.accounts.services.jar_service import GetParentAccount
from familybank.modules.auth.deps import RequireChild, RequireParent, UserContext
from familybank.modules.wishlist.models import WishlistItem
from familybank.modules.wishlist.schemas import WishlistItemCreate, WishlistItemOut, WishlistItemUpdate
from familybank.modules.wishlist.services import (
    ApproveAndPurchase,
    CreateItem,
    DeleteOwnItem,
    DenyItem,
    GetItem,
    ListItems,
    UpdateItem,
    WishlistProgress,
)

router = APIRouter(
    prefix="/api",
    tags=["wishlist"],
    dependencies=[Depends(EnsureStorageReady)],
)
logger = logging.getLogger("familybank.wishlist")


def _BuildItemOut(item: WishlistItem, progress: WishlistProgress | None = None) -> WishlistItemOut:
    return WishlistItemOut(
        Id=item.Id,
        AccountId=item.AccountId,
        Title=item.Title,
        Description=item.Description,
        TargetAmount=item.TargetAmount,
        ApprovedByParent=bool(item.ApprovedByParent),
        IsPurchased=bool(item.IsPurchased),
        PurchasedAt=item.PurchasedAt,
        Saved=progress.Saved if progress else None,
        ProgressPercent=progress.ProgressPercent if progress else None,
        CanAfford=progress.CanAfford if progress else None,
        CreatedAt=item.CreatedAt,
        UpdatedAt=item.UpdatedAt,
    )


def _GetParentItem(db: Session, parent_user_id: int, item_id: int) -> WishlistItem:
    item = GetItem(db, item_id)
    GetParentAccount(db, parent_user_id, item.AccountId)
    return item


@router.get("/me/wishlist", response_model=list[WishlistItemOut])
def GetMyWishlist(
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireChild()),
) -> list[WishlistItemOut]:
    try:
        return [_BuildItemOut(entry.Item, entry) for entry in ListItems(db, user.AccountId)]
    except FamilyBankError as exc:
        RaiseForDomainError(exc)


@router.post("/me/wishlist", response_model=WishlistItemOut, status_code=status.HTTP_201_CREATED)
def CreateMyWishlistItem(
    payload: WishlistItemCreate,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireChild()),
    clock: Clock = Depends(GetClock),
) -> WishlistItemOut:
    try:
        item = CreateItem(
            db,
            user.AccountId,
            title=payload.Title,
            target_amount=payload.TargetAmount,
            description=payload.Description,
            clock=clock,
        )
        return _BuildItemOut(item)
    except FamilyBankError as exc:
        RaiseForDomainError(exc)


@router.patch("/me/wishlist/{item_id}", response_model=WishlistItemOut)
def UpdateMyWishlistItem(
    item_id: int,
    payload: WishlistItemUpdate,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireChild()),
    clock: Clock = Depends(GetClock),
) -> WishlistItemOut:
    try:
        changes = payload.model_dump(exclude_unset=True)
        field_map = {"Title": "title", "Description": "description", "TargetAmount": "target_amount"}
        item = UpdateItem(
            db,
            user.AccountId,
            item_id,
            clock=clock,
            **{field_map[key]: value for key, value in changes.items()},
        )
        return _BuildItemOut(item)
    except FamilyBankError as exc:
        RaiseForDomainError(exc)


@router.delete("/me/wishlist/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def DeleteMyWishlistItem(
    item_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireChild()),
) -> None:
    try:
        DeleteOwnItem(db, user.AccountId, item_id)
    except FamilyBankError as exc:
        RaiseForDomainError(exc)


@router.get("/accounts/{account_id}/wishlist", response_model=list[WishlistItemOut])
def GetAccountWishlist(
    account_id: int,
    pending_only: bool = False,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireParent()),
) -> list[WishlistItemOut]:
    try:
        GetParentAccount(db, user.Id, account_id)
        return [
            _BuildItemOut(entry.Item, entry)
            for entry in ListItems(db, account_id, pending_only=pending_only)
        ]
    except FamilyBankError as exc:
        RaiseForDomainError(exc)


@router.post("/wishlist/{item_id}/approve", response_model=WishlistItemOut)
def ApproveWishlistItem(
    item_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireParent()),
    clock: Clock = Depends(GetClock),
) -> WishlistItemOut:
    try:
        _GetParentItem(db, user.Id, item_id)
        return _BuildItemOut(ApproveAndPurchase(db, item_id, actor_user_id=user.Id, clock=clock))
    except FamilyBankError as exc:
        RaiseForDomainError(exc)


@router.post("/wishlist/{item_id}/deny", status_code=status.HTTP_204_NO_CONTENT)
def DenyWishlistItem(
    item_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireParent()),
) -> None:
    try:
        _GetParentItem(db, user.Id, item_id)
        DenyItem(db, item_id)
    except FamilyBankError as exc:
        RaiseForDomainError(exc)
