from datetime import datetime

from pydantic import BaseModel, Field

from familybank.modules.accounts.models import JarType


class JarOut(BaseModel):
    JarType: JarType
    Percentage: int


class AccountOut(BaseModel):
    Id: int
    ParentUserId: int
    Name: str
    Age: int | None = None
    DailySpendLimit: int | None = None
    PerTransactionLimit: int | None = None
    Jars: list[JarOut]
    CreatedAt: datetime
    UpdatedAt: datetime


class AccountCreate(BaseModel):
    Name: str = Field(min_length=1, max_length=120)
    Age: int | None = Field(default=None, ge=0, le=25)
    Percentages: dict[JarType, int] | None = None


class AccountUpdate(BaseModel):
    Name: str | None = Field(default=None, min_length=1, max_length=120)
    Age: int | None = Field(default=None, ge=0, le=25)
    DailySpendLimit: int | None = Field(default=None, ge=0)
    PerTransactionLimit: int | None = Field(default=None, ge=0)


class JarPercentagesUpdate(BaseModel):
    Percentages: dict[JarType, int]


class JarBalanceOut(BaseModel):
    JarType: JarType
    Percentage: int
    Amount: int
    DisplayAmount: float


class BalancesResponse(BaseModel):
    AccountId: int
    Jars: list[JarBalanceOut]
    TotalAmount: int
    TotalDisplayAmount: float
