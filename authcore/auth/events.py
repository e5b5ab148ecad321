"""
Authcore Auth Events
In-process, fire-and-forget event bus for authentication lifecycle events
"""

import asyncio
import inspect
from collections import defaultdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Set

from authcore.utils.logger import get_logger

logger = get_logger(__name__)

EventListener = Callable[[Dict[str, Any]], Any]


class AuthEventType(str, Enum):
    REGISTER = "auth:register"
    LOGIN = "auth:login"
    LOGIN_FAILED = "auth:login_failed"
    LOGOUT = "auth:logout"
    TOKEN_REFRESH = "auth:token_refresh"
    PASSWORD_RESET_REQUEST = "auth:password_reset_request"
    PASSWORD_RESET = "auth:password_reset"
    PASSWORD_CHANGE = "auth:password_change"
    SESSIONS_REVOKED = "auth:sessions_revoked"


class AuthEvents:
    """
    Publishes auth events to registered listeners.

    A listener receives the event payload dict. Listener failures are
    logged and never reach the auth operation that emitted the event.
    Coroutine listeners are scheduled on the running loop and not awaited.
    """

    def __init__(self) -> None:
        self._listeners: Dict[AuthEventType, List[EventListener]] = defaultdict(list)
        self._pending: Set[asyncio.Task] = set()

    def on(self, event_type: AuthEventType, listener: EventListener) -> None:
        self._listeners[event_type].append(listener)

    def off(self, event_type: AuthEventType, listener: EventListener) -> None:
        if listener in self._listeners[event_type]:
            self._listeners[event_type].remove(listener)

    def on_any(self, listener: EventListener) -> None:
        """Subscribe a listener to every event type"""
        for event_type in AuthEventType:
            self.on(event_type, listener)

    def emit(self, event_type: AuthEventType, **data: Any) -> None:
        payload = {"event": event_type.value, **data, "timestamp": datetime.now(timezone.utc)}

        for listener in list(self._listeners[event_type]):
            try:
                result = listener(payload)
                if inspect.isawaitable(result):
                    self._schedule(event_type, result)
            except Exception:
                logger.exception(f"Listener for {event_type.value} failed")

    def _schedule(self, event_type: AuthEventType, awaitable: Any) -> None:
        task = asyncio.ensure_future(awaitable)
        self._pending.add(task)

        def _done(finished: asyncio.Task) -> None:
            self._pending.discard(finished)
            if not finished.cancelled() and finished.exception() is not None:
                logger.error(
                    f"Async listener for {event_type.value} failed",
                    exc_info=finished.exception(),
                )

        task.add_done_callback(_done)
