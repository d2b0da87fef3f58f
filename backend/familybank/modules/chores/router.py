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
from familybank.modules.chores.models import Chore, ChoreStatus
from familybank.modules.chores.schemas import ChoreCreate, ChoreOut, ChoreUpdate
from familybank.modules.chores.services.lifecycle_service import (
    ApproveChore,
    CreateChore,
    DeleteChore,
    GetChore,
    ListChores,
    ParseRecurrenceDays,
    RejectChore,
    SubmitChore,
    UpdateChore,
)

router = APIRouter(
    prefix="/api",
    tags=["chores"],
    dependencies=[Depends(EnsureStorageReady)],
)
logger = logging.getLogger("familybank.chores")


def _BuildChoreOut(chore: Chore) -> ChoreOut:
    return ChoreOut(
        Id=chore.Id,
        AccountId=chore.AccountId,
        Title=chore.Title,
        Description=chore.Description,
        TokenReward=chore.TokenReward,
        Status=chore.Status,
        DueAt=chore.DueAt,
        SubmittedAt=chore.SubmittedAt,
        ApprovedAt=chore.ApprovedAt,
        IsRecurring=bool(chore.IsRecurring),
        RecurrenceType=chore.RecurrenceType,
        RecurrenceDays=ParseRecurrenceDays(chore.RecurrenceDays) if chore.RecurrenceDays else None,
        ParentChoreId=chore.ParentChoreId,
        CreatedAt=chore.CreatedAt,
        UpdatedAt=chore.UpdatedAt,
    )


def _GetParentChore(db: Session, parent_user_id: int, chore_id: int) -> Chore:
    chore = GetChore(db, chore_id)
    GetParentAccount(db, parent_user_id, chore.AccountId)
    return chore


@router.get("/accounts/{account_id}/chores", response_model=list[ChoreOut])
def GetAccountChores(
    account_id: int,
    status_filter: ChoreStatus | None = None,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireParent()),
) -> list[ChoreOut]:
    try:
        GetParentAccount(db, user.Id, account_id)
        return [_BuildChoreOut(chore) for chore in ListChores(db, account_id, status_filter)]
    except FamilyBankError as exc:
        RaiseForDomainError(exc)


@router.post("/accounts/{account_id}/chores", response_model=ChoreOut, status_code=status.HTTP_201_CREATED)
def CreateAccountChore(
    account_id: int,
    payload: ChoreCreate,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireParent()),
    clock: Clock = Depends(GetClock),
) -> ChoreOut:
    try:
        GetParentAccount(db, user.Id, account_id)
        chore = CreateChore(
            db,
            account_id,
            title=payload.Title,
            token_reward=payload.TokenReward,
            description=payload.Description,
            due_at=payload.DueAt,
            is_recurring=payload.IsRecurring,
            recurrence_type=payload.RecurrenceType,
            recurrence_days=payload.RecurrenceDays,
            clock=clock,
        )
        return _BuildChoreOut(chore)
    except FamilyBankError as exc:
        RaiseForDomainError(exc)


@router.patch("/chores/{chore_id}", response_model=ChoreOut)
def UpdateAccountChore(
    chore_id: int,
    payload: ChoreUpdate,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireParent()),
    clock: Clock = Depends(GetClock),
) -> ChoreOut:
    try:
        _GetParentChore(db, user.Id, chore_id)
        changes = payload.model_dump(exclude_unset=True)
        field_map = {
            "Title": "title",
            "Description": "description",
            "TokenReward": "token_reward",
            "DueAt": "due_at",
            "IsRecurring": "is_recurring",
            "RecurrenceType": "recurrence_type",
            "RecurrenceDays": "recurrence_days",
        }
        chore = UpdateChore(
            db,
            chore_id,
            clock=clock,
            **{field_map[key]: value for key, value in changes.items()},
        )
        return _BuildChoreOut(chore)
    except FamilyBankError as exc:
        RaiseForDomainError(exc)


@router.delete("/chores/{chore_id}", status_code=status.HTTP_204_NO_CONTENT)
def DeleteAccountChore(
    chore_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireParent()),
) -> None:
    try:
        _GetParentChore(db, user.Id, chore_id)
        DeleteChore(db, chore_id)
    except FamilyBankError as exc:
        RaiseForDomainError(exc)


@router.post("/chores/{chore_id}/approve", response_model=ChoreOut)
def ApproveAccountChore(
    chore_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireParent()),
    clock: Clock = Depends(GetClock),
) -> ChoreOut:
    try:
        _GetParentChore(db, user.Id, chore_id)
        return _BuildChoreOut(ApproveChore(db, chore_id, actor_user_id=user.Id, clock=clock))
    except FamilyBankError as exc:
        RaiseForDomainError(exc)


@router.post("/chores/{chore_id}/reject", response_model=ChoreOut)
def RejectAccountChore(
    chore_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireParent()),
    clock: Clock = Depends(GetClock),
) -> ChoreOut:
    try:
        _GetParentChore(db, user.Id, chore_id)
        return _BuildChoreOut(RejectChore(db, chore_id, clock=clock))
    except FamilyBankError as exc:
        RaiseForDomainError(exc)


@router.get("/me/chores", response_model=list[ChoreOut])
def GetMyChores(
    status_filter: ChoreStatus | None = None,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireChild()),
) -> list[ChoreOut]:
    return [_BuildChoreOut(chore) for chore in ListChores(db, user.AccountId, status_filter)]


@router.post("/me/chores/{chore_id}/submit", response_model=ChoreOut)
def SubmitMyChore(
    chore_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireChild()),
    clock: Clock = Depends(GetClock),
) -> ChoreOut:
    try:
        return _BuildChoreOut(SubmitChore(db, chore_id, account_id=user.AccountId, clock=clock))
    except FamilyBankError as exc:
        RaiseForDomainError(exc)
