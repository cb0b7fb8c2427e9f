"""
Tests for the retrying API client and the scheduling credential cache.
"""

from __future__ import annotations

import httpx
import pytest

from booking_agent.application.dto.api_result import ParsedError, ParsedOk
from booking_agent.application.exceptions import CredentialRefreshError, UpstreamUnavailableError
from booking_agent.domain.entities.session import Credential, Session
from booking_agent.infrastructure.http.resilient_client import ApiRequest, ResilientApiClient, parse_body
from booking_agent.infrastructure.zoho.auth import ZohoCredentialCache


class StaticToken:
    def __init__(self, token: str = "tok") -> None:
        self.token = token
        self.calls = 0

    def get_token(self, session: Session) -> str:
        self.calls += 1
        return self.token


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_parse_body_variants():
    assert parse_body('{"a": 1}') == ParsedOk({"a": 1})
    assert parse_body("").reason == "empty_body"
    assert parse_body("<html>oops</html>") == ParsedError(raw="<html>oops</html>", reason="invalid_json")


def test_retries_rate_limit_then_succeeds_with_linear_backoff():
    responses = iter([httpx.Response(429), httpx.Response(429), httpx.Response(200, json={"ok": True})])
    delays: list[float] = []
    api = ResilientApiClient(_client(lambda request: next(responses)), sleep=delays.append, base_delay_seconds=1.0)

    resp = api.call(ApiRequest("GET", "https://api.test/services"))

    assert resp.ok
    assert resp.json_or_empty() == {"ok": True}
    assert delays == [1.0, 2.0]


def test_transport_errors_exhaust_into_upstream_unavailable():
    attempts = []

    def handler(request):
        attempts.append(request)
        raise httpx.ConnectError("boom", request=request)

    api = ResilientApiClient(_client(handler), max_attempts=3, sleep=lambda _: None)
    with pytest.raises(UpstreamUnavailableError):
        api.call(ApiRequest("GET", "https://api.test/services"))
    assert len(attempts) == 3


def test_server_errors_are_returned_not_retried():
    attempts = []

    def handler(request):
        attempts.append(request)
        return httpx.Response(500, text="")

    api = ResilientApiClient(_client(handler), sleep=lambda _: None)
    resp = api.call(ApiRequest("GET", "https://api.test/services"))

    assert len(attempts) == 1
    assert not resp.ok
    assert resp.json_or_empty() == {}


def test_session_calls_carry_authorization_header():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={})

    tokens = StaticToken("abc")
    api = ResilientApiClient(_client(handler), credentials=tokens)
    api.call(ApiRequest("GET", "https://api.test/services"), Session(user_id="u1"))

    assert seen["auth"] == "Zoho-oauthtoken abc"
    assert tokens.calls == 1


def test_credential_failure_happens_before_any_request():
    sent = []
    cache = ZohoCredentialCache(
        client=_client(lambda request: sent.append(request) or httpx.Response(200)),
        accounts_url="https://accounts.test",
        client_id=None,
        client_secret=None,
        refresh_token=None,
    )
    api = ResilientApiClient(_client(lambda request: sent.append(request) or httpx.Response(200)), credentials=cache)

    with pytest.raises(CredentialRefreshError):
        api.call(ApiRequest("GET", "https://api.test/services"), Session(user_id="u1"))
    assert sent == []


def _token_cache(handler, now: list[float]) -> ZohoCredentialCache:
    return ZohoCredentialCache(
        client=_client(handler),
        accounts_url="https://accounts.test/",
        client_id="cid",
        client_secret="secret",
        refresh_token="refresh",
        refresh_margin_seconds=3000,
        clock=lambda: now[0],
    )


def test_token_is_cached_until_refresh_margin():
    calls = []

    def handler(request):
        calls.append(request)
        assert request.url.path == "/oauth/v2/token"
        assert request.url.params["grant_type"] == "refresh_token"
        return httpx.Response(200, json={"access_token": f"token-{len(calls)}", "expires_in": 3600})

    now = [10_000.0]
    cache = _token_cache(handler, now)
    session = Session(user_id="u1")

    assert cache.get_token(session) == "token-1"
    now[0] += 2999
    assert cache.get_token(session) == "token-1"
    now[0] += 2
    assert cache.get_token(session) == "token-2"
    assert session.credential == Credential(access_token="token-2", issued_at=now[0])
    assert len(calls) == 2


def test_rejected_refresh_raises():
    cache = _token_cache(lambda request: httpx.Response(200, json={"error": "invalid_code"}), [0.0])
    with pytest.raises(CredentialRefreshError):
        cache.get_token(Session(user_id="u1"))


def test_refresh_transport_error_raises():
    def handler(request):
        raise httpx.ConnectTimeout("slow", request=request)

    cache = _token_cache(handler, [0.0])
    with pytest.raises(CredentialRefreshError):
        cache.get_token(Session(user_id="u1"))
