from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Protocol

import httpx

from booking_agent.application.dto.api_result import ApiResponse, ParsedError, ParsedOk
from booking_agent.application.exceptions import UpstreamUnavailableError
from booking_agent.domain.entities.session import Session

RATE_LIMITED = 429


class TokenProvider(Protocol):
    def get_token(self, session: Session) -> str: ...


@dataclass(frozen=True)
class ApiRequest:
    method: str
    url: str
    params: dict[str, Any] | None = None
    json: Any = None
    data: dict[str, Any] | None = None
    headers: dict[str, str] | None = None
    auth: tuple[str, str] | None = None


def parse_body(text: str) -> ParsedOk | ParsedError:
    if not text or not text.strip():
        return ParsedError(raw="", reason="empty_body")
    try:
        return ParsedOk(json.loads(text))
    except ValueError:
        return ParsedError(raw=text[:500], reason="invalid_json")


class ResilientApiClient:
    def __init__(
        self,
        client: httpx.Client,
        credentials: TokenProvider | None = None,
        auth_scheme: str = "Zoho-oauthtoken",
        max_attempts: int = 3,
        base_delay_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._credentials = credentials
        self._auth_scheme = auth_scheme
        self._max_attempts = max(1, max_attempts)
        self._base_delay = base_delay_seconds
        self._sleep = sleep
        self._logger = logging.getLogger(__name__)

    def call(self, request: ApiRequest, session: Session | None = None) -> ApiResponse:
        headers = dict(request.headers or {})
        if session is not None:
            if self._credentials is None:
                raise ValueError("Session-authenticated call without a credential provider")
            # Raises before any network call when no token can be resolved.
            headers["Authorization"] = f"{self._auth_scheme} {self._credentials.get_token(session)}"

        for attempt in range(1, self._max_attempts + 1):
            try:
                resp = self._client.request(
                    request.method,
                    request.url,
                    params=request.params,
                    json=request.json,
                    data=request.data,
                    headers=headers,
                    auth=request.auth,
                )
            except httpx.TransportError as e:
                self._logger.warning(
                    "Provider call failed",
                    extra={"url": request.url, "attempt": attempt, "reason": type(e).__name__},
                )
                if attempt == self._max_attempts:
                    raise UpstreamUnavailableError(f"{request.method} {request.url} unreachable") from e
                self._sleep(self._base_delay * attempt)
                continue

            if resp.status_code == RATE_LIMITED:
                self._logger.warning(
                    "Provider rate limited",
                    extra={"url": request.url, "attempt": attempt, "status": resp.status_code},
                )
                if attempt == self._max_attempts:
                    raise UpstreamUnavailableError(f"{request.method} {request.url} rate limited")
                self._sleep(self._base_delay * attempt)
                continue

            body = parse_body(resp.text)
            if isinstance(body, ParsedError):
                self._logger.warning(
                    "Provider returned unparseable body",
                    extra={"url": request.url, "status": resp.status_code, "reason": body.reason},
                )
            return ApiResponse(status=resp.status_code, body=body)

        raise UpstreamUnavailableError(f"{request.method} {request.url} exhausted retries")
