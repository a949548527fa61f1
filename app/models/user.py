from datetime import datetime, UTC

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship, validates
from app.database import Base, new_id
from app.utils.auth import hash_password


def _utcnow():
    return datetime.now(UTC)


class User(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)
    age = Column(Integer, nullable=False, default=0)
    avatar = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)
    version = Column(Integer, nullable=False)

    tokens = relationship(
        "UserToken",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="UserToken.id",
    )
    tasks = relationship("Task", back_populates="owner", lazy="dynamic", passive_deletes=True)
    uploads = relationship("Upload", back_populates="owner", lazy="dynamic", passive_deletes=True)

    # every UPDATE checks and bumps version, a stale write raises StaleDataError
    __mapper_args__ = {"version_id_col": version}

    @validates("name")
    def _trim_name(self, key, value):
        return value.strip() if isinstance(value, str) else value

    @validates("email")
    def _normalize_email(self, key, value):
        return value.strip().lower() if isinstance(value, str) else value

    @validates("password")
    def _hash_password(self, key, value):
        # the plaintext never reaches the column, whoever assigns it
        return hash_password(value)


class UserToken(Base):
    __tablename__ = "user_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    token = Column(String, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    user = relationship("User", back_populates="tokens")
