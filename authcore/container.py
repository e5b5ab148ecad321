"""Runtime container for authcore dependencies."""

from typing import Any, Dict, Optional

from authcore.auth.events import AuthEvents
from authcore.auth.passwords import PasswordService
from authcore.auth.tokens import TokenService
from authcore.cache import CacheManager
from authcore.db import Database
from authcore.metrics import AUTH_EVENTS
from authcore.utils.config import Settings, get_settings
from authcore.utils.logger import get_logger
from authcore.utils.logging_config import MetricsLogger

logger = get_logger(__name__)


class AuthContainer:
    """
    Process-wide collaborators, built once and shared by every request.

    Any collaborator can be passed in explicitly; the rest are built from
    settings.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        database: Optional[Database] = None,
        cache: Optional[CacheManager] = None,
        tokens: Optional[TokenService] = None,
        passwords: Optional[PasswordService] = None,
        events: Optional[AuthEvents] = None,
    ):
        self.settings = settings or get_settings()
        self.database = database or Database(
            self.settings.database_url, echo=self.settings.database_echo
        )
        self.cache = cache or CacheManager(self.settings.redis_url)
        self.tokens = tokens or TokenService.from_settings(self.settings)
        self.passwords = passwords or PasswordService(rounds=self.settings.bcrypt_rounds)
        self.events = events or AuthEvents()

        self.metrics = MetricsLogger(self.settings.service_name)
        self.events.on_any(self._record_event)

    def _record_event(self, payload: Dict[str, Any]) -> None:
        AUTH_EVENTS.labels(event=payload["event"]).inc()
        self.metrics.log_event(payload["event"], payload, user_id=payload.get("user_id"))

    async def startup(self) -> None:
        """Connect the cache and make sure the schema exists"""
        logger.info("Auth container starting up...")
        await self.cache.connect()
        if self.settings.auto_create_tables:
            await self.database.create_tables()

    async def shutdown(self) -> None:
        logger.info("Auth container shutting down...")
        await self.cache.close()
        await self.database.close()

    async def health(self) -> Dict[str, str]:
        """Reachability of each backing service"""
        return {
            "database": "connected" if await self.database.health_check() else "disconnected",
            "redis": "connected" if await self.cache.health_check() else "disconnected",
        }
