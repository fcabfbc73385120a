from sqlalchemy import Column, String, Text, ForeignKey
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base, ActivatableMixin


class News(ActivatableMixin, BaseModel, Base):
    __tablename__ = "news"

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    media = Column(String(1024), nullable=False)  # hosted URL
    media_id = Column(String(255), nullable=True)  # media-host id, used to delete the file

    created_by = Column(String(36), ForeignKey("admins.id", ondelete="SET NULL"), nullable=True)

    created_by_admin = relationship("Admin", back_populates="news")

    def delete(self):  # type: ignore[override]
        """News rows are removed outright; media cleanup is the caller's job."""
        import models
        models.storage.delete(self)
        models.storage.save()
