from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from housepoints.db.base import Base
from housepoints.models.common import BrandingMixin, UUIDPrimaryKeyMixin


class Pod(UUIDPrimaryKeyMixin, BrandingMixin, Base):
    __tablename__ = "pods"

    house_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("houses.id", ondelete="SET NULL"), nullable=True, index=True
    )

    house = relationship("House", back_populates="pods")
    classes = relationship("SchoolClass", back_populates="pod")
