from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from housepoints.db.base import Base
from housepoints.models.common import UUIDPrimaryKeyMixin, utcnow


class BehaviorCategory(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "behavior_categories"
    __table_args__ = (
        CheckConstraint("point_value >= 1 AND point_value <= 10", name="ck_behavior_categories_point_value_range"),
    )

    name: Mapped[str] = mapped_column(String(128), nullable=False, unique=True, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_positive: Mapped[bool] = mapped_column(Boolean, nullable=False)
    point_value: Mapped[int] = mapped_column(Integer, nullable=False)

    behavior_points = relationship("BehaviorPoint", back_populates="category")

    @property
    def signed_points(self) -> int:
        return self.point_value if self.is_positive else -self.point_value


class BehaviorPoint(UUIDPrimaryKeyMixin, Base):
    """One immutable ledger row. Totals are always derived from these."""

    __tablename__ = "behavior_points"
    __table_args__ = (CheckConstraint("points <> 0", name="ck_behavior_points_points_nonzero"),)

    student_id: Mapped[str] = mapped_column(String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("behavior_categories.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    teacher_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    student = relationship("Student", back_populates="behavior_points")
    category = relationship("BehaviorCategory", back_populates="behavior_points")
    teacher = relationship("User", back_populates="behavior_points")
