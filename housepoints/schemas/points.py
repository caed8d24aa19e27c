from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, StrictInt, field_validator

from housepoints.schemas.categories import BehaviorCategoryOut
from housepoints.schemas.users import UserBrief


class PointAwardEntry(BaseModel):
    student_id: str = Field(..., min_length=1, max_length=36)
    category_id: str = Field(..., min_length=1, max_length=36)
    points: StrictInt | None = Field(default=None, ge=-1000, le=1000)
    teacher_id: str | None = Field(default=None, max_length=36)
    notes: str | None = Field(default=None, max_length=1000)

    @field_validator("points")
    @classmethod
    def points_not_zero(cls, value: int | None) -> int | None:
        if value == 0:
            raise ValueError("points must be a non-zero integer")
        return value


class BatchAwardRequest(BaseModel):
    entries: list[dict[str, Any]] = Field(..., min_length=1, max_length=500)


class BehaviorPointOut(BaseModel):
    id: str
    student_id: str
    category_id: str
    teacher_id: str
    points: int
    notes: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class StudentBrief(BaseModel):
    id: str
    first_name: str
    last_name: str
    grade_level: str | None
    section: str | None

    model_config = {"from_attributes": True}


class RecentBehaviorPointOut(BehaviorPointOut):
    student: StudentBrief | None
    teacher: UserBrief | None
    category: BehaviorCategoryOut | None


class BatchFailureOut(BaseModel):
    index: int
    error: str


class BatchAwardResponse(BaseModel):
    count: int
    created: list[BehaviorPointOut]
    failed: list[BatchFailureOut]
