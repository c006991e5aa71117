"""Wrapper de httpx.

Estandariza timeouts y headers para los endpoints JSON-RPC y de refresh de
los custodios. Todas las llamadas salientes pasan por aquí, así que ninguna
queda sin timeout acotado.
"""

from __future__ import annotations

from typing import Any

import httpx

from core.config import AppSettings


def build_async_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
) -> httpx.AsyncClient:
    """Crea un `httpx.AsyncClient` con defaults seguros."""

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=False,
        headers=headers,
    )


def json_body_or_empty(response: httpx.Response) -> dict[str, Any]:
    """Decodifica el body JSON; `{}` si no es un objeto JSON válido."""

    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}
