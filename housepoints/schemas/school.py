from pydantic import BaseModel, Field


class BrandingCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    color: str = Field(default="#3b82f6", min_length=4, max_length=16)
    description: str | None = Field(default=None, max_length=1000)


class BrandingUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=128)
    color: str | None = Field(default=None, min_length=4, max_length=16)
    description: str | None = Field(default=None, max_length=1000)


class HouseOut(BaseModel):
    id: str
    name: str
    color: str
    description: str | None
    logo_url: str | None
    points: int = 0

    model_config = {"from_attributes": True}


class PodCreateRequest(BrandingCreateRequest):
    house_id: str | None = Field(default=None, max_length=36)


class PodUpdateRequest(BrandingUpdateRequest):
    house_id: str | None = Field(default=None, max_length=36)


class PodOut(HouseOut):
    house_id: str | None


class ClassCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=64)
    pod_id: str = Field(..., min_length=1, max_length=36)
    grade_level: str | None = Field(default=None, max_length=16)
    description: str | None = Field(default=None, max_length=1000)


class ClassUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=64)
    pod_id: str | None = Field(default=None, min_length=1, max_length=36)
    grade_level: str | None = Field(default=None, max_length=16)
    description: str | None = Field(default=None, max_length=1000)


class ClassOut(BaseModel):
    id: str
    name: str
    pod_id: str
    grade_level: str | None
    description: str | None
    points: int = 0

    model_config = {"from_attributes": True}


class StudentCreateRequest(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=128)
    last_name: str = Field(..., min_length=1, max_length=128)
    class_id: str = Field(..., min_length=1, max_length=36)
    house_id: str | None = Field(default=None, max_length=36)
    grade_level: str | None = Field(default=None, max_length=16)
    section: str | None = Field(default=None, max_length=16)


class StudentRosterUpdateRequest(BaseModel):
    class_id: str | None = Field(default=None, min_length=1, max_length=36)
    house_id: str | None = Field(default=None, max_length=36)
    grade_level: str | None = Field(default=None, max_length=16)
    section: str | None = Field(default=None, max_length=16)


class StudentOut(BaseModel):
    id: str
    first_name: str
    last_name: str
    grade_level: str | None
    section: str | None
    class_id: str
    house_id: str | None
    total_points: int = 0

    model_config = {"from_attributes": True}


class StudentDetail(StudentOut):
    effective_house_id: str | None
    balance: int


class TopStudentOut(BaseModel):
    id: str
    first_name: str
    last_name: str
    class_id: str
    total_points: int = 0

    model_config = {"from_attributes": True}
