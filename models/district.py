from sqlalchemy import Column, String
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base, ActivatableMixin


class District(ActivatableMixin, BaseModel, Base):
    __tablename__ = "districts"

    name = Column(String(100), nullable=False, unique=True)

    talukas = relationship("Taluka", back_populates="district")
    posts = relationship("Post", back_populates="district")
