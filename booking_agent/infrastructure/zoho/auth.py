from __future__ import annotations

import logging
import time
from typing import Callable

import httpx

from booking_agent.application.exceptions import CredentialRefreshError
from booking_agent.domain.entities.session import Credential, Session


class ZohoCredentialCache:
    """Caches the Zoho access token on the session and refreshes it before it goes stale."""

    def __init__(
        self,
        client: httpx.Client,
        accounts_url: str,
        client_id: str | None,
        client_secret: str | None,
        refresh_token: str | None,
        refresh_margin_seconds: float = 50 * 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._token_url = f"{accounts_url.rstrip('/')}/oauth/v2/token"
        self._client_id = client_id
        self._client_secret = client_secret
        self._refresh_token = refresh_token
        self._margin = refresh_margin_seconds
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    def get_token(self, session: Session) -> str:
        now = self._clock()
        cached = session.credential
        if cached is not None and now - cached.issued_at < self._margin:
            return cached.access_token

        token = self._refresh()
        session.credential = Credential(access_token=token, issued_at=now)
        self._logger.info("Scheduling token refreshed", extra={"user_id": session.user_id})
        return token

    def _refresh(self) -> str:
        if not (self._client_id and self._client_secret and self._refresh_token):
            raise CredentialRefreshError("Zoho OAuth client credentials are not configured")

        params = {
            "refresh_token": self._refresh_token,
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "grant_type": "refresh_token",
        }
        try:
            resp = self._client.post(self._token_url, params=params)
        except httpx.TransportError as e:
            raise CredentialRefreshError(f"Token refresh failed: {e}") from e

        try:
            data = resp.json()
        except ValueError:
            data = {}
        token = data.get("access_token") if isinstance(data, dict) else None
        if resp.status_code >= 400 or not token:
            self._logger.error(
                "Token refresh rejected",
                extra={"status": resp.status_code, "reason": (data or {}).get("error") if isinstance(data, dict) else None},
            )
            raise CredentialRefreshError(f"Token refresh rejected with status {resp.status_code}")
        return str(token)
