from datetime import datetime

from pydantic import BaseModel, Field


class WishlistItemOut(BaseModel):
    Id: int
    AccountId: int
    Title: str
    Description: str | None = None
    TargetAmount: int
    ApprovedByParent: bool
    IsPurchased: bool
    PurchasedAt: datetime | None = None
    Saved: int | None = None
    ProgressPercent: int | None = None
    CanAfford: bool | None = None
    CreatedAt: datetime
    UpdatedAt: datetime


class WishlistItemCreate(BaseModel):
    Title: str = Field(min_length=1, max_length=200)
    Description: str | None = Field(default=None, max_length=1000)
    TargetAmount: int = Field(gt=0)


class WishlistItemUpdate(BaseModel):
    Title: str | None = Field(default=None, min_length=1, max_length=200)
    Description: str | None = Field(default=None, max_length=1000)
    TargetAmount: int | None = Field(default=None, gt=0)
