"""
Authcore Models
"""

from .database import Base, RefreshTokenDB, UserDB, UTCDateTime

__all__ = [
    "Base",
    "UserDB",
    "RefreshTokenDB",
    "UTCDateTime",
]
