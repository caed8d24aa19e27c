from pydantic import BaseModel, Field


class BehaviorCategoryCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    description: str | None = Field(default=None, max_length=1000)
    is_positive: bool
    point_value: int = Field(..., ge=1, le=10)


class BehaviorCategoryUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=128)
    description: str | None = Field(default=None, max_length=1000)
    is_positive: bool | None = None
    point_value: int | None = Field(default=None, ge=1, le=10)


class BehaviorCategoryOut(BaseModel):
    id: str
    name: str
    description: str | None
    is_positive: bool
    point_value: int
    signed_points: int

    model_config = {"from_attributes": True}
