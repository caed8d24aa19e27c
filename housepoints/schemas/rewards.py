from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class RewardCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    description: str | None = Field(default=None, max_length=1000)
    point_cost: int = Field(..., ge=1, le=100_000)
    quantity: int = Field(default=0, ge=0, le=100_000)


class RewardUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=128)
    description: str | None = Field(default=None, max_length=1000)
    point_cost: int | None = Field(default=None, ge=1, le=100_000)
    quantity: int | None = Field(default=None, ge=0, le=100_000)


class RewardOut(BaseModel):
    id: str
    name: str
    description: str | None
    point_cost: int
    quantity: int
    image_url: str | None

    model_config = {"from_attributes": True}


class RedeemRequest(BaseModel):
    student_id: str = Field(..., min_length=1, max_length=36)
    reward_id: str = Field(..., min_length=1, max_length=36)


class RedemptionStatusRequest(BaseModel):
    status: Literal["pending", "approved", "delivered"]


class RedemptionOut(BaseModel):
    id: str
    student_id: str
    reward_id: str
    points_spent: int
    status: str
    created_at: datetime
    reward: RewardOut | None = None

    model_config = {"from_attributes": True}


class RedeemResponse(BaseModel):
    redemption: RedemptionOut
    balance: int
