import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from familybank.core.clock import Clock, GetClock
from familybank.core.errors import FamilyBankError
from familybank.core.http import RaiseForDomainError
from familybank.core.storage import EnsureStorageReady
from familybank.db import GetDb
from familybank.modules.accounts.services.jar_service import GetParentAccount
from familybank.modules.allowances.models import Allowance
from familybank.modules.allowances.schemas import AllowanceOut, AllowancePaymentOut, AllowanceUpsert
from familybank.modules.allowances.services import GetAllowance, ListAllowancePayments, UpsertAllowance
from familybank.modules.auth.deps import RequireParent, UserContext

router = APIRouter(
    prefix="/api/accounts",
    tags=["allowances"],
    dependencies=[Depends(EnsureStorageReady)],
)
logger = logging.getLogger("familybank.allowances")


def _BuildAllowanceOut(db: Session, allowance: Allowance) -> AllowanceOut:
    payments = ListAllowancePayments(db, allowance.AccountId)
    return AllowanceOut(
        Id=allowance.Id,
        AccountId=allowance.AccountId,
        WeeklyAmount=allowance.WeeklyAmount,
        DayOfWeek=allowance.DayOfWeek,
        NextPaymentAt=allowance.NextPaymentAt,
        IsActive=bool(allowance.IsActive),
        CreatedAt=allowance.CreatedAt,
        UpdatedAt=allowance.UpdatedAt,
        RecentPayments=[
            AllowancePaymentOut(
                Id=payment.Id,
                PeriodDate=payment.PeriodDate,
                Amount=payment.Amount,
                PaidAt=payment.PaidAt,
            )
            for payment in payments
        ],
    )


@router.get("/{account_id}/allowance", response_model=AllowanceOut)
def GetAccountAllowance(
    account_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireParent()),
) -> AllowanceOut:
    try:
        GetParentAccount(db, user.Id, account_id)
    except FamilyBankError as exc:
        RaiseForDomainError(exc)
    allowance = GetAllowance(db, account_id)
    if not allowance:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Allowance not configured")
    return _BuildAllowanceOut(db, allowance)


@router.put("/{account_id}/allowance", response_model=AllowanceOut)
def PutAccountAllowance(
    account_id: int,
    payload: AllowanceUpsert,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireParent()),
    clock: Clock = Depends(GetClock),
) -> AllowanceOut:
    try:
        GetParentAccount(db, user.Id, account_id)
        allowance = UpsertAllowance(
            db,
            account_id,
            weekly_amount=payload.WeeklyAmount,
            day_of_week=payload.DayOfWeek,
            is_active=payload.IsActive,
            actor_user_id=user.Id,
            clock=clock,
        )
        return _BuildAllowanceOut(db, allowance)
    except FamilyBankError as exc:
        RaiseForDomainError(exc)
