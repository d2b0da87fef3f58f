from datetime import date, datetime

from pydantic import BaseModel, Field


class AllowancePaymentOut(BaseModel):
    Id: int
    PeriodDate: date
    Amount: int
    PaidAt: datetime


class AllowanceOut(BaseModel):
    Id: int
    AccountId: int
    WeeklyAmount: int
    DayOfWeek: int
    NextPaymentAt: datetime
    IsActive: bool
    CreatedAt: datetime
    UpdatedAt: datetime
    RecentPayments: list[AllowancePaymentOut] = []


class AllowanceUpsert(BaseModel):
    WeeklyAmount: int = Field(gt=0)
    DayOfWeek: int = Field(ge=0, le=6, description="0 = Sunday, 6 = Saturday")
    IsActive: bool = True
