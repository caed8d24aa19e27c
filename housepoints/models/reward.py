from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from housepoints.db.base import Base
from housepoints.models.common import CreatedAtMixin, UUIDPrimaryKeyMixin

REDEMPTION_STATUSES = ("pending", "approved", "delivered")


class Reward(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "rewards"
    __table_args__ = (
        CheckConstraint("point_cost > 0", name="ck_rewards_point_cost_positive"),
        CheckConstraint("quantity >= 0", name="ck_rewards_quantity_non_negative"),
    )

    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    point_cost: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    redemptions = relationship("RewardRedemption", back_populates="reward")


class RewardRedemption(UUIDPrimaryKeyMixin, CreatedAtMixin, Base):
    __tablename__ = "reward_redemptions"

    student_id: Mapped[str] = mapped_column(String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    reward_id: Mapped[str] = mapped_column(String(36), ForeignKey("rewards.id", ondelete="RESTRICT"), nullable=False, index=True)
    points_spent: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending", index=True)

    student = relationship("Student", back_populates="redemptions")
    reward = relationship("Reward", back_populates="redemptions")
