from sqlalchemy import Column, String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base, ActivatableMixin


class Taluka(ActivatableMixin, BaseModel, Base):
    __tablename__ = "talukas"

    name = Column(String(100), nullable=False)
    # RESTRICT: a district with talukas cannot be hard-deleted
    district_id = Column(String(36), ForeignKey("districts.id", ondelete="RESTRICT"), nullable=False, index=True)

    district = relationship("District", back_populates="talukas")
    posts = relationship("Post", back_populates="taluka")

    __table_args__ = (
        UniqueConstraint("district_id", "name", name="uq_talukas_district_name"),
    )
