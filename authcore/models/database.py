"""
Authcore - Database Models
SQLAlchemy ORM models for users and refresh tokens.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    TypeDecorator,
    Uuid,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime stored as UTC.

    PostgreSQL keeps the offset; SQLite drops it, so values read back
    without tzinfo are tagged as UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


# ============================================================================
# USERS
# ============================================================================


class UserDB(Base):
    """User account"""

    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    username = Column(String(50), nullable=False, unique=True)
    email = Column(String(255), nullable=False, unique=True)
    password = Column(String(255), nullable=False)  # bcrypt hash
    display_name = Column(String(100), nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<UserDB id={self.id} username={self.username}>"


# ============================================================================
# REFRESH TOKENS
# ============================================================================


class RefreshTokenDB(Base):
    """Persisted refresh token; one valid row is one active session"""

    __tablename__ = "refresh_tokens"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    token = Column(Text, nullable=False)
    expires_at = Column(UTCDateTime, nullable=False)

    is_revoked = Column(Boolean, nullable=False, default=False)
    revoked_at = Column(UTCDateTime, nullable=True)

    user_agent = Column(String(500), nullable=True)
    ip_address = Column(String(45), nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_refresh_tokens_user_id", "user_id"),
        Index("ix_refresh_tokens_token", "token", unique=True),
        Index("ix_refresh_tokens_expires_at", "expires_at"),
    )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """True once expires_at is not in the future"""
        now = now or utcnow()
        return self.expires_at <= now

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        """Not revoked and not expired"""
        return not self.is_revoked and not self.is_expired(now)

    def __repr__(self) -> str:
        return f"<RefreshTokenDB id={self.id} user_id={self.user_id} revoked={self.is_revoked}>"
