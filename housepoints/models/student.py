from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from housepoints.db.base import Base
from housepoints.models.common import UUIDPrimaryKeyMixin


class Student(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "students"

    first_name: Mapped[str] = mapped_column(String(128), nullable=False)
    last_name: Mapped[str] = mapped_column(String(128), nullable=False)
    grade_level: Mapped[str | None] = mapped_column(String(16), nullable=True)
    section: Mapped[str | None] = mapped_column(String(16), nullable=True)
    class_id: Mapped[str] = mapped_column(String(36), ForeignKey("classes.id", ondelete="RESTRICT"), nullable=False, index=True)
    house_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("houses.id", ondelete="SET NULL"), nullable=True, index=True
    )

    school_class = relationship("SchoolClass", back_populates="students")
    house = relationship("House", back_populates="students")
    behavior_points = relationship("BehaviorPoint", back_populates="student", cascade="all, delete-orphan")
    redemptions = relationship("RewardRedemption", back_populates="student", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def effective_house_id(self) -> str | None:
        if self.house_id:
            return self.house_id
        pod = self.school_class.pod if self.school_class else None
        return pod.house_id if pod else None
