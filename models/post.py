from sqlalchemy import Column, String, Text, JSON, ForeignKey, Index
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base, ActivatableMixin


class Post(ActivatableMixin, BaseModel, Base):
    __tablename__ = "posts"

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    # List of hosted media URLs
    media = Column(JSON, nullable=False, default=list)

    category_id = Column(String(36), ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False)
    district_id = Column(String(36), ForeignKey("districts.id", ondelete="RESTRICT"), nullable=False)
    taluka_id = Column(String(36), ForeignKey("talukas.id", ondelete="RESTRICT"), nullable=False)
    posted_by = Column(String(36), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)

    category = relationship("Category", back_populates="posts")
    district = relationship("District", back_populates="posts")
    taluka = relationship("Taluka", back_populates="posts")
    author = relationship("User", back_populates="posts")

    __table_args__ = (
        Index("ix_posts_filters", "category_id", "district_id", "taluka_id"),
        Index("ix_posts_created_at", "created_at"),
    )
