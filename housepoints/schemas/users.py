from typing import Literal

from pydantic import BaseModel, Field

from housepoints.core.security import MIN_PASSWORD_LENGTH


class UserBrief(BaseModel):
    id: str
    first_name: str
    last_name: str

    model_config = {"from_attributes": True}


class UserOut(UserBrief):
    login: str
    role: str


class UserCreateRequest(BaseModel):
    login: str = Field(..., min_length=1, max_length=128)
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=256)
    first_name: str = Field(default="", max_length=128)
    last_name: str = Field(default="", max_length=128)
    role: Literal["admin", "teacher"] = "teacher"
