from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from housepoints.db.base import Base
from housepoints.models.common import UUIDPrimaryKeyMixin

STAFF_ROLES = ("admin", "teacher")


class User(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "users"

    login: Mapped[str] = mapped_column(String(128), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(512), nullable=False)
    first_name: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    role: Mapped[str] = mapped_column(String(32), nullable=False, default="teacher")

    behavior_points = relationship("BehaviorPoint", back_populates="teacher")

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
