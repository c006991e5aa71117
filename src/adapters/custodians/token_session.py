"""Ciclo de vida OAuth del refresh token (común a ambas generaciones).

Algoritmo de obtención del access token:
1. Cache válido -> se devuelve sin red.
2. Refresh grant a `refresh_token_url` (form en ECA-1, JSON en ECA-3).
3. 401 con `url` -> evento `TokenExpired` + `RefreshTokenInvalid`.
   Otro status no exitoso -> `AccessTokenRequestFailed`.
   Éxito -> cache con `expires_in`; si llega otro refresh token, se reemplaza
   y se emite `RefreshTokenRotated` antes de devolver el access token.
"""

from __future__ import annotations

import hashlib
import logging
import time
from enum import Enum
from typing import Callable

import httpx

from adapters.custodians.token_cache import AccessTokenCache
from adapters.http_client import build_async_client, json_body_or_empty
from core.config import AppSettings
from core.domain.errors import AccessTokenRequestFailed, RefreshTokenInvalid
from core.domain.events import RefreshTokenRotated, TokenEvent, TokenExpired
from core.events import EventChannel

logger = logging.getLogger(__name__)


class GrantEncoding(str, Enum):
    FORM = "form"
    JSON = "json"


def mask_token(token: str) -> str:
    if len(token) <= 10:
        return "*" * len(token)
    return f"{token[:5]}...{token[-5:]}"


def fingerprint_refresh_token(refresh_token: str, url: str) -> str:
    return hashlib.sha256((refresh_token + url).encode("utf-8")).hexdigest()


def _parse_ttl(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


class RefreshTokenSession:
    """Dueño del refresh token vigente y del cache de access token."""

    def __init__(
        self,
        *,
        api_base_url: str,
        refresh_token: str,
        refresh_token_url: str,
        encoding: GrantEncoding,
        events: EventChannel[TokenEvent],
        settings: AppSettings | None = None,
        clock: Callable[[], float] = time.time,
        label: str = "Custodian",
    ) -> None:
        self._api_base_url = api_base_url
        self._refresh_token = refresh_token
        self._refresh_token_url = refresh_token_url
        self._encoding = encoding
        self._events = events
        self._settings = settings or AppSettings()
        self._cache = AccessTokenCache(clock)
        self._label = label

    @property
    def refresh_token(self) -> str:
        return self._refresh_token

    @property
    def refresh_token_url(self) -> str:
        return self._refresh_token_url

    @property
    def cache(self) -> AccessTokenCache:
        return self._cache

    def set_refresh_token(self, refresh_token: str) -> None:
        """Cambio "top down" (desde el estado); no emite evento."""

        self._refresh_token = refresh_token

    async def get_access_token(self) -> str:
        if self._cache.is_valid():
            return self._cache.get()

        body = {"grant_type": "refresh_token", "refresh_token": self._refresh_token}
        try:
            async with build_async_client(self._settings) as client:
                if self._encoding is GrantEncoding.FORM:
                    response = await client.post(self._refresh_token_url, data=body)
                else:
                    response = await client.post(self._refresh_token_url, json=body)
        except httpx.HTTPError as exc:
            raise AccessTokenRequestFailed(None, str(exc)) from exc

        payload = json_body_or_empty(response)

        expired_url = payload.get("url")
        if response.status_code == 401 and isinstance(expired_url, str) and expired_url:
            self._events.emit(
                TokenExpired(
                    url=expired_url,
                    old_refresh_token_hash=fingerprint_refresh_token(self._refresh_token, expired_url),
                )
            )
            raise RefreshTokenInvalid(expired_url)

        if not response.is_success:
            message = payload.get("message")
            raise AccessTokenRequestFailed(
                response.status_code, message if isinstance(message, str) else None
            )

        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise AccessTokenRequestFailed(response.status_code, "Response did not include an access_token")

        self._cache.set(access_token, _parse_ttl(payload.get("expires_in")))

        new_refresh_token = payload.get("refresh_token")
        if (
            isinstance(new_refresh_token, str)
            and new_refresh_token
            and new_refresh_token != self._refresh_token
        ):
            logger.debug(
                "%sClient: Refresh token changed to %s", self._label, mask_token(new_refresh_token)
            )
            old_refresh_token = self._refresh_token
            self._refresh_token = new_refresh_token
            self._events.emit(
                RefreshTokenRotated(
                    api_url=self._api_base_url,
                    old_refresh_token=old_refresh_token,
                    new_refresh_token=new_refresh_token,
                )
            )

        return access_token
