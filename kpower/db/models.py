"""
SQLAlchemy ORM models for database tables.

A single users table: referral links point at the referrer's username.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, Index, ForeignKey
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _new_user_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserModel(Base):
    """
    Users table - one row per registered user.

    username and invite_code carry unique constraints, so a concurrent
    registration that raced past the invite code check fails at insert.
    """
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_user_id)  # UUID
    username = Column(String(100), unique=True, nullable=False)
    invite_code = Column(String(20), unique=True, nullable=False)
    referred_by = Column(String(100), ForeignKey('users.username'), nullable=True)  # Referrer's username
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        Index('idx_users_referred_by', 'referred_by'),
        Index('idx_users_created_at', 'created_at'),
    )

    def __repr__(self):
        return f"<UserModel(username={self.username}, invite_code={self.invite_code})>"
