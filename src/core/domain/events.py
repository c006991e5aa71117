"""Eventos del ciclo de vida de tokens emitidos por los clientes de custodio."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class RefreshTokenRotated:
    """El custodio entregó un refresh token nuevo para `api_url`."""

    api_url: str
    old_refresh_token: str
    new_refresh_token: str


@dataclass(frozen=True)
class TokenExpired:
    """El refresh token murió (401 con `url`).

    `old_refresh_token_hash` es sha256(old_refresh_token + url); nunca se
    publica el token en claro.
    """

    url: str
    old_refresh_token_hash: str


TokenEvent = Union[RefreshTokenRotated, TokenExpired]
