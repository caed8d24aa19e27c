from sqlalchemy.orm import relationship

from housepoints.db.base import Base
from housepoints.models.common import BrandingMixin, UUIDPrimaryKeyMixin


class House(UUIDPrimaryKeyMixin, BrandingMixin, Base):
    __tablename__ = "houses"

    pods = relationship("Pod", back_populates="house")
    students = relationship("Student", back_populates="house")
