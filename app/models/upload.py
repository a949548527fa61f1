from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from app.database import Base, new_id
from app.models.user import _utcnow


class Upload(Base):
    """Metadata for a file kept on disk; ``path`` is the lookup key."""

    __tablename__ = "uploads"

    id = Column(String(32), primary_key=True, default=new_id)
    path = Column(String, unique=True, nullable=False)
    filename = Column(String, nullable=False)
    originalname = Column(String, nullable=False)
    size = Column(Integer, nullable=False)
    mimetype = Column(String, nullable=False)
    collection_name = Column(String, nullable=False)
    owner_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    created_at = Column(DateTime, nullable=False, default=_utcnow)
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    owner = relationship("User", back_populates="uploads")
