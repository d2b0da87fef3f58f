import logging
from datetime import datetime

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from familybank.core.clock import Clock, GetClock
from familybank.core.errors import FamilyBankError
from familybank.core.http import RaiseForDomainError
from familybank.core.money import DisplayToTokens, TokensToDisplay
from familybank.core.storage import EnsureStorageReady
from familybank.db import GetDb
from familybank.modules.accounts.models import JarType
from familybank.modules.accounts.services.jar_service import GetParentAccount
from familybank.modules.auth.deps import RequireParent, UserContext
from familybank.modules.ledger.models import Transaction, TransactionType
from familybank.modules.ledger.schemas import (
    AdjustmentRequest,
    CashOutRequest,
    InsightsResponse,
    JarReconciliationOut,
    ReconciliationResponse,
    TransactionOut,
)
from familybank.modules.ledger.services.balance_service import AdjustJar, CashOut
from familybank.modules.ledger.services.reconciliation_service import (
    ListTransactions,
    ReconcileAccount,
    SummarizeActivity,
)

router = APIRouter(
    prefix="/api/accounts",
    tags=["ledger"],
    dependencies=[Depends(EnsureStorageReady)],
)
logger = logging.getLogger("familybank.ledger")


def _BuildTransactionOut(entry: Transaction) -> TransactionOut:
    return TransactionOut(
        Id=entry.Id,
        AccountId=entry.AccountId,
        JarType=entry.JarType,
        Amount=entry.Amount,
        DisplayAmount=float(TokensToDisplay(entry.Amount)),
        TransactionType=entry.TransactionType,
        ReferenceType=entry.ReferenceType,
        ReferenceId=entry.ReferenceId,
        Description=entry.Description,
        CreatedByUserId=entry.CreatedByUserId,
        CreatedAt=entry.CreatedAt,
    )


@router.get("/{account_id}/transactions", response_model=list[TransactionOut])
def GetTransactions(
    account_id: int,
    jar_type: JarType | None = None,
    transaction_type: TransactionType | None = None,
    limit: int = 100,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireParent()),
) -> list[TransactionOut]:
    try:
        GetParentAccount(db, user.Id, account_id)
        entries = ListTransactions(
            db,
            account_id,
            jar_type=jar_type,
            transaction_type=transaction_type,
            limit=max(1, min(limit, 500)),
        )
        return [_BuildTransactionOut(entry) for entry in entries]
    except FamilyBankError as exc:
        RaiseForDomainError(exc)


@router.get("/{account_id}/reconciliation", response_model=ReconciliationResponse)
def GetReconciliation(
    account_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireParent()),
) -> ReconciliationResponse:
    try:
        GetParentAccount(db, user.Id, account_id)
        report = ReconcileAccount(db, account_id)
        return ReconciliationResponse(
            AccountId=report.AccountId,
            IsConsistent=report.IsConsistent,
            Jars=[
                JarReconciliationOut(
                    JarType=jar.JarType,
                    Balance=jar.Balance,
                    LedgerTotal=jar.LedgerTotal,
                    Difference=jar.Difference,
                )
                for jar in report.Jars
            ],
        )
    except FamilyBankError as exc:
        RaiseForDomainError(exc)


@router.get("/{account_id}/insights", response_model=InsightsResponse)
def GetInsights(
    account_id: int,
    since: datetime | None = None,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireParent()),
) -> InsightsResponse:
    try:
        GetParentAccount(db, user.Id, account_id)
        summary = SummarizeActivity(db, account_id, since)
        return InsightsResponse(
            AccountId=summary.AccountId,
            Since=summary.Since,
            EarnedByType=summary.EarnedByType,
            SpentByJar=summary.SpentByJar,
            TotalEarned=summary.TotalEarned,
            TotalSpent=summary.TotalSpent,
            TotalEarnedDisplay=float(TokensToDisplay(summary.TotalEarned)),
            TotalSpentDisplay=float(TokensToDisplay(summary.TotalSpent)),
        )
    except FamilyBankError as exc:
        RaiseForDomainError(exc)


@router.post("/{account_id}/cash-out", response_model=TransactionOut, status_code=status.HTTP_201_CREATED)
def CreateCashOut(
    account_id: int,
    payload: CashOutRequest,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireParent()),
    clock: Clock = Depends(GetClock),
) -> TransactionOut:
    try:
        GetParentAccount(db, user.Id, account_id)
        entry = CashOut(
            db,
            account_id=account_id,
            jar_type=payload.JarType,
            amount=DisplayToTokens(payload.Amount),
            description=payload.Description,
            actor_user_id=user.Id,
            clock=clock,
        )
        return _BuildTransactionOut(entry)
    except FamilyBankError as exc:
        RaiseForDomainError(exc)


@router.post("/{account_id}/adjustments", response_model=TransactionOut, status_code=status.HTTP_201_CREATED)
def CreateAdjustment(
    account_id: int,
    payload: AdjustmentRequest,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireParent()),
    clock: Clock = Depends(GetClock),
) -> TransactionOut:
    try:
        GetParentAccount(db, user.Id, account_id)
        entry = AdjustJar(
            db,
            account_id=account_id,
            jar_type=payload.JarType,
            delta=payload.Amount,
            description=payload.Description,
            actor_user_id=user.Id,
            clock=clock,
        )
        return _BuildTransactionOut(entry)
    except FamilyBankError as exc:
        RaiseForDomainError(exc)
