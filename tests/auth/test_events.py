"""Tests for the in-process auth event bus."""

import asyncio
from unittest.mock import MagicMock

from authcore.auth.events import AuthEvents, AuthEventType


def test_emit_calls_listeners_with_payload() -> None:
    events = AuthEvents()
    listener = MagicMock()
    events.on(AuthEventType.LOGIN, listener)

    events.emit(AuthEventType.LOGIN, user_id="u1", email="a@example.com")

    listener.assert_called_once()
    payload = listener.call_args.args[0]
    assert payload["event"] == "auth:login"
    assert payload["user_id"] == "u1"
    assert payload["email"] == "a@example.com"
    assert payload["timestamp"].tzinfo is not None


def test_listener_only_receives_its_event() -> None:
    events = AuthEvents()
    listener = MagicMock()
    events.on(AuthEventType.LOGOUT, listener)

    events.emit(AuthEventType.LOGIN, user_id="u1")

    listener.assert_not_called()


def test_off_unsubscribes() -> None:
    events = AuthEvents()
    listener = MagicMock()
    events.on(AuthEventType.LOGIN, listener)
    events.off(AuthEventType.LOGIN, listener)

    events.emit(AuthEventType.LOGIN)

    listener.assert_not_called()
    # Removing an unknown listener is a no-op
    events.off(AuthEventType.LOGOUT, listener)


def test_on_any_receives_every_event() -> None:
    events = AuthEvents()
    received = []
    events.on_any(lambda payload: received.append(payload["event"]))

    events.emit(AuthEventType.REGISTER)
    events.emit(AuthEventType.SESSIONS_REVOKED, count=2)

    assert received == ["auth:register", "auth:sessions_revoked"]


def test_failing_listener_does_not_stop_others() -> None:
    events = AuthEvents()
    broken = MagicMock(side_effect=RuntimeError("boom"))
    healthy = MagicMock()
    events.on(AuthEventType.LOGIN, broken)
    events.on(AuthEventType.LOGIN, healthy)

    events.emit(AuthEventType.LOGIN)

    healthy.assert_called_once()


async def test_coroutine_listener_is_scheduled() -> None:
    events = AuthEvents()
    seen = asyncio.Event()

    async def listener(payload):
        seen.set()

    async def failing(payload):
        raise RuntimeError("boom")

    events.on(AuthEventType.LOGOUT, listener)
    events.on(AuthEventType.LOGOUT, failing)
    events.emit(AuthEventType.LOGOUT, user_id="u1")

    await asyncio.wait_for(seen.wait(), timeout=1)
    await asyncio.sleep(0)
