from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from housepoints.db.base import Base
from housepoints.models.common import UUIDPrimaryKeyMixin


class SchoolClass(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "classes"

    name: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    grade_level: Mapped[str | None] = mapped_column(String(16), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    pod_id: Mapped[str] = mapped_column(String(36), ForeignKey("pods.id", ondelete="RESTRICT"), nullable=False, index=True)

    pod = relationship("Pod", back_populates="classes")
    students = relationship("Student", back_populates="school_class")
