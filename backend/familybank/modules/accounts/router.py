import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from familybank.core.clock import Clock, GetClock
from familybank.core.errors import FamilyBankError
from familybank.core.http import RaiseForDomainError
from familybank.core.money import TokensToDisplay
from familybank.core.storage import EnsureStorageReady
from familybank.db import GetDb
from familybank.modules.accounts.models import Account
from familybank.modules.accounts.schemas import (
    AccountCreate,
    AccountOut,
    AccountUpdate,
    BalancesResponse,
    JarBalanceOut,
    JarOut,
    JarPercentagesUpdate,
)
from familybank.modules.accounts.services.jar_service import (
    CreateAccount,
    DeleteAccount,
    GetAccount,
    GetParentAccount,
    ListParentAccounts,
    LoadBalances,
    LoadJars,
    UpdateAccountProfile,
    UpdateJarPercentages,
)
from familybank.modules.auth.deps import RequireChild, RequireParent, UserContext

router = APIRouter(
    prefix="/api",
    tags=["accounts"],
    dependencies=[Depends(EnsureStorageReady)],
)
logger = logging.getLogger("familybank.accounts")


def _BuildAccountOut(db: Session, account: Account) -> AccountOut:
    return AccountOut(
        Id=account.Id,
        ParentUserId=account.ParentUserId,
        Name=account.Name,
        Age=account.Age,
        DailySpendLimit=account.DailySpendLimit,
        PerTransactionLimit=account.PerTransactionLimit,
        Jars=[JarOut(JarType=jar.JarType, Percentage=jar.Percentage) for jar in LoadJars(db, account.Id)],
        CreatedAt=account.CreatedAt,
        UpdatedAt=account.UpdatedAt,
    )


def BuildBalancesResponse(db: Session, account_id: int) -> BalancesResponse:
    balances = LoadBalances(db, account_id)
    percentages = {jar.JarType: jar.Percentage for jar in LoadJars(db, account_id)}
    total = sum(balances.values())
    return BalancesResponse(
        AccountId=account_id,
        Jars=[
            JarBalanceOut(
                JarType=jar_type,
                Percentage=percentages.get(jar_type.value, 0),
                Amount=amount,
                DisplayAmount=float(TokensToDisplay(amount)),
            )
            for jar_type, amount in balances.items()
        ],
        TotalAmount=total,
        TotalDisplayAmount=float(TokensToDisplay(total)),
    )


@router.get("/accounts", response_model=list[AccountOut])
def ListAccounts(
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireParent()),
) -> list[AccountOut]:
    return [_BuildAccountOut(db, account) for account in ListParentAccounts(db, user.Id)]


@router.post("/accounts", response_model=AccountOut, status_code=status.HTTP_201_CREATED)
def CreateChildAccount(
    payload: AccountCreate,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireParent()),
    clock: Clock = Depends(GetClock),
) -> AccountOut:
    try:
        account = CreateAccount(
            db,
            parent_user_id=user.Id,
            name=payload.Name,
            age=payload.Age,
            percentages=payload.Percentages,
            clock=clock,
        )
        return _BuildAccountOut(db, account)
    except FamilyBankError as exc:
        RaiseForDomainError(exc)


@router.get("/accounts/{account_id}", response_model=AccountOut)
def GetChildAccount(
    account_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireParent()),
) -> AccountOut:
    try:
        return _BuildAccountOut(db, GetParentAccount(db, user.Id, account_id))
    except FamilyBankError as exc:
        RaiseForDomainError(exc)


@router.patch("/accounts/{account_id}", response_model=AccountOut)
def UpdateChildAccount(
    account_id: int,
    payload: AccountUpdate,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireParent()),
    clock: Clock = Depends(GetClock),
) -> AccountOut:
    try:
        account = GetParentAccount(db, user.Id, account_id)
        account = UpdateAccountProfile(
            db,
            account,
            name=payload.Name,
            age=payload.Age,
            daily_spend_limit=payload.DailySpendLimit,
            per_transaction_limit=payload.PerTransactionLimit,
            clock=clock,
        )
        return _BuildAccountOut(db, account)
    except FamilyBankError as exc:
        RaiseForDomainError(exc)


@router.delete("/accounts/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
def DeleteChildAccount(
    account_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireParent()),
) -> None:
    try:
        GetParentAccount(db, user.Id, account_id)
        DeleteAccount(db, account_id)
    except FamilyBankError as exc:
        RaiseForDomainError(exc)


@router.put("/accounts/{account_id}/jars", response_model=AccountOut)
def UpdateJars(
    account_id: int,
    payload: JarPercentagesUpdate,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireParent()),
) -> AccountOut:
    try:
        account = GetParentAccount(db, user.Id, account_id)
        UpdateJarPercentages(db, account_id, payload.Percentages)
        return _BuildAccountOut(db, account)
    except FamilyBankError as exc:
        RaiseForDomainError(exc)


@router.get("/accounts/{account_id}/balances", response_model=BalancesResponse)
def GetAccountBalances(
    account_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireParent()),
) -> BalancesResponse:
    try:
        GetParentAccount(db, user.Id, account_id)
        return BuildBalancesResponse(db, account_id)
    except FamilyBankError as exc:
        RaiseForDomainError(exc)


@router.get("/me/balances", response_model=BalancesResponse)
def GetMyBalances(
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireChild()),
) -> BalancesResponse:
    try:
        GetAccount(db, user.AccountId)
        return BuildBalancesResponse(db, user.AccountId)
    except FamilyBankError as exc:
        RaiseForDomainError(exc)
