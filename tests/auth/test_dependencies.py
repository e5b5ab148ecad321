"""Tests for request-derived client context."""

from typing import Dict, Optional, Tuple

import pytest
from starlette.requests import Request

from authcore.auth.dependencies import USER_AGENT_MAX_LENGTH, get_client_context


def _request(headers: Dict[str, str], client: Optional[Tuple[str, int]] = ("192.0.2.10", 5000)) -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/auth/login",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
        "client": client,
    }
    return Request(scope)


@pytest.mark.parametrize(
    "headers,client,expected_ip",
    [
        ({}, ("192.0.2.10", 5000), "192.0.2.10"),
        ({}, None, None),
        ({"X-Forwarded-For": "198.51.100.4, 10.0.0.1"}, ("10.0.0.1", 80), "198.51.100.4"),
        ({"X-Forwarded-For": "2001:DB8::1"}, None, "2001:db8::1"),
        ({"X-Forwarded-For": "x" * 60}, ("10.0.0.1", 80), None),
        ({"X-Forwarded-For": " , 10.0.0.1"}, ("10.0.0.1", 80), None),
    ],
)
def test_client_ip(headers, client, expected_ip) -> None:
    context = get_client_context(_request(headers, client))

    assert context.ip_address == expected_ip


def test_user_agent_is_truncated() -> None:
    context = get_client_context(_request({"User-Agent": "b" * (USER_AGENT_MAX_LENGTH + 100)}))

    assert context.user_agent == "b" * USER_AGENT_MAX_LENGTH


def test_missing_user_agent() -> None:
    assert get_client_context(_request({})).user_agent is None
