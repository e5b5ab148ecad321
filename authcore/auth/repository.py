"""
Authcore Auth Repositories
Database operations for users and refresh tokens

Repositories flush but never commit; the calling service owns the
transaction.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from authcore.models.database import RefreshTokenDB, UserDB, utcnow
from authcore.utils.logger import get_logger

logger = get_logger(__name__)


class UserRepository:
    """Repository for user database operations"""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def find_by_id(self, user_id: UUID) -> Optional[UserDB]:
        """Get user by UUID"""
        return await self.db.get(UserDB, user_id)

    async def find_by_email(self, email: str) -> Optional[UserDB]:
        """Get user by email address (case-insensitive)"""
        result = await self.db.execute(
            select(UserDB).where(UserDB.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def find_by_username(self, username: str) -> Optional[UserDB]:
        """Get user by username (case-insensitive)"""
        result = await self.db.execute(
            select(UserDB).where(UserDB.username == username.strip().lower())
        )
        return result.scalar_one_or_none()

    async def create(
        self,
        username: str,
        email: str,
        password_hash: str,
        display_name: Optional[str] = None,
    ) -> UserDB:
        """
        Create a new user

        Args:
            username: Unique username
            email: Unique email
            password_hash: Hashed password
            display_name: Optional human-readable name

        Returns:
            Created user
        """
        user = UserDB(
            username=username.strip().lower(),
            email=email.strip().lower(),
            password=password_hash,
            display_name=display_name,
        )
        self.db.add(user)
        await self.db.flush()
        return user

    async def update_password(self, user_id: UUID, new_password_hash: str) -> bool:
        """Update user password"""
        result = await self.db.execute(
            update(UserDB)
            .where(UserDB.id == user_id)
            .values(password=new_password_hash, updated_at=utcnow())
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount > 0


class RefreshTokenRepository:
    """Repository for persisted refresh tokens"""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def create(
        self,
        user_id: UUID,
        token: str,
        expires_at: datetime,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> RefreshTokenDB:
        """Insert a new, unrevoked token"""
        row = RefreshTokenDB(
            user_id=user_id,
            token=token,
            expires_at=expires_at,
            is_revoked=False,
            user_agent=user_agent,
            ip_address=ip_address,
        )
        self.db.add(row)
        await self.db.flush()
        return row

    async def find_by_token(self, token: str) -> Optional[RefreshTokenDB]:
        """Get an unrevoked token row by its string; expiry is not checked"""
        result = await self.db.execute(
            select(RefreshTokenDB).where(
                RefreshTokenDB.token == token,
                RefreshTokenDB.is_revoked.is_(False),
            )
        )
        return result.scalar_one_or_none()

    async def find_by_id(self, token_id: UUID) -> Optional[RefreshTokenDB]:
        """Get a token row by primary key, whatever its state"""
        return await self.db.get(RefreshTokenDB, token_id)

    async def find_active_by_user_id(self, user_id: UUID) -> List[RefreshTokenDB]:
        """All unrevoked rows for a user, oldest first; may include expired rows"""
        result = await self.db.execute(
            select(RefreshTokenDB)
            .where(
                RefreshTokenDB.user_id == user_id,
                RefreshTokenDB.is_revoked.is_(False),
            )
            .order_by(RefreshTokenDB.created_at)
        )
        return list(result.scalars().all())

    async def revoke(self, row: RefreshTokenDB) -> None:
        """Revoke an already-loaded row"""
        row.is_revoked = True
        row.revoked_at = utcnow()
        await self.db.flush()

    async def revoke_by_token(self, token: str) -> bool:
        """Revoke by token string; True if an unrevoked row was affected"""
        now = utcnow()
        result = await self.db.execute(
            update(RefreshTokenDB)
            .where(
                RefreshTokenDB.token == token,
                RefreshTokenDB.is_revoked.is_(False),
            )
            .values(is_revoked=True, revoked_at=now, updated_at=now)
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount > 0

    async def revoke_all_for_user(self, user_id: UUID) -> int:
        """Revoke every unrevoked row of a user; returns affected count"""
        now = utcnow()
        result = await self.db.execute(
            update(RefreshTokenDB)
            .where(
                RefreshTokenDB.user_id == user_id,
                RefreshTokenDB.is_revoked.is_(False),
            )
            .values(is_revoked=True, revoked_at=now, updated_at=now)
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount

    async def revoke_all_except(self, user_id: UUID, keep_token_id: UUID) -> int:
        """Revoke every unrevoked row of a user except one, in a single statement"""
        now = utcnow()
        result = await self.db.execute(
            update(RefreshTokenDB)
            .where(
                RefreshTokenDB.user_id == user_id,
                RefreshTokenDB.id != keep_token_id,
                RefreshTokenDB.is_revoked.is_(False),
            )
            .values(is_revoked=True, revoked_at=now, updated_at=now)
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount

    async def delete_expired(self) -> int:
        """Hard-delete rows past expiry, revoked or not"""
        result = await self.db.execute(
            delete(RefreshTokenDB)
            .where(RefreshTokenDB.expires_at < utcnow())
            .execution_options(synchronize_session="evaluate")
        )
        count = result.rowcount
        if count:
            logger.info(f"Deleted {count} expired refresh tokens")
        return count
