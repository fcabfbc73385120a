from sqlalchemy.orm import relationship
from sqlalchemy import Column, String

from models.base_model import BaseModel, Base, ActivatableMixin


class Category(ActivatableMixin, BaseModel, Base):
    __tablename__ = "categories"

    name = Column(String(64), nullable=False, unique=True)

    posts = relationship("Post", back_populates="category")
