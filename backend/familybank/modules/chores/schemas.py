from datetime import datetime

from pydantic import BaseModel, Field

from familybank.modules.chores.models import ChoreStatus


class ChoreOut(BaseModel):
    Id: int
    AccountId: int
    Title: str
    Description: str | None = None
    TokenReward: int
    Status: ChoreStatus
    DueAt: datetime | None = None
    SubmittedAt: datetime | None = None
    ApprovedAt: datetime | None = None
    IsRecurring: bool
    RecurrenceType: str | None = None
    RecurrenceDays: list[int] | None = None
    ParentChoreId: int | None = None
    CreatedAt: datetime
    UpdatedAt: datetime


class ChoreCreate(BaseModel):
    Title: str = Field(min_length=1, max_length=200)
    Description: str | None = Field(default=None, max_length=1000)
    TokenReward: int = Field(gt=0)
    DueAt: datetime | None = None
    IsRecurring: bool = False
    RecurrenceType: str | None = Field(default=None, pattern="^(daily|weekly)$")
    RecurrenceDays: list[int] | None = None


class ChoreUpdate(BaseModel):
    Title: str | None = Field(default=None, min_length=1, max_length=200)
    Description: str | None = Field(default=None, max_length=1000)
    TokenReward: int | None = Field(default=None, gt=0)
    DueAt: datetime | None = None
    IsRecurring: bool | None = None
    RecurrenceType: str | None = Field(default=None, pattern="^(daily|weekly)$")
    RecurrenceDays: list[int] | None = None
