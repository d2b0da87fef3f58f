from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from familybank.modules.accounts.models import JarType
from familybank.modules.ledger.models import TransactionType


class TransactionOut(BaseModel):
    Id: int
    AccountId: int
    JarType: JarType
    Amount: int
    DisplayAmount: float
    TransactionType: TransactionType
    ReferenceType: str | None = None
    ReferenceId: int | None = None
    Description: str | None = None
    CreatedByUserId: int | None = None
    CreatedAt: datetime


class CashOutRequest(BaseModel):
    JarType: JarType
    Amount: Decimal = Field(gt=0, description="Amount in display units, converted to tokens at 10 per unit")
    Description: str | None = Field(default=None, max_length=300)


class AdjustmentRequest(BaseModel):
    JarType: JarType
    Amount: int = Field(description="Signed token delta")
    Description: str = Field(min_length=1, max_length=300)


class JarReconciliationOut(BaseModel):
    JarType: JarType
    Balance: int
    LedgerTotal: int
    Difference: int


class ReconciliationResponse(BaseModel):
    AccountId: int
    IsConsistent: bool
    Jars: list[JarReconciliationOut]


class InsightsResponse(BaseModel):
    AccountId: int
    Since: datetime | None = None
    EarnedByType: dict[str, int]
    SpentByJar: dict[str, int]
    TotalEarned: int
    TotalSpent: int
    TotalEarnedDisplay: float
    TotalSpentDisplay: float
