from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship, validates
from app.database import Base, new_id
from app.models.user import _utcnow


class Task(Base):
    __tablename__ = "tasks"

    id = Column(String(32), primary_key=True, default=new_id)
    title = Column(String, nullable=False)
    completed = Column(Boolean, nullable=False, default=False)
    owner_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    created_at = Column(DateTime, nullable=False, default=_utcnow)
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    owner = relationship("User", back_populates="tasks")

    @validates("title")
    def _trim_title(self, key, value):
        return value.strip() if isinstance(value, str) else value
