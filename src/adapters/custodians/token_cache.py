"""Cache de un único access token con su TTL declarado."""

from __future__ import annotations

import time
from typing import Callable

from core.domain.errors import NotCached


class AccessTokenCache:
    """Guarda un access token y responde si sigue siendo confiable.

    El valor solo es válido mientras `now < issued_at + ttl`. Un TTL de 0 o
    `None` significa "nunca confiar": siempre inválido. No persiste entre
    procesos, así que cada arranque en frío fuerza un refresh.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._value: str | None = None
        self._issued_at: float | None = None
        self._ttl_seconds: float | None = None

    @property
    def ttl_seconds(self) -> float | None:
        return self._ttl_seconds

    def set(self, value: str, ttl_seconds: float | None) -> None:
        self._value = value
        self._ttl_seconds = ttl_seconds
        self._issued_at = self._clock()

    def is_valid(self) -> bool:
        if self._value is None or self._issued_at is None:
            return False
        if not self._ttl_seconds or self._ttl_seconds <= 0:
            return False
        return self._clock() < self._issued_at + self._ttl_seconds

    def get(self) -> str:
        if self._value is None:
            raise NotCached("No access token cached")
        return self._value

    def clear(self) -> None:
        self._value = None
        self._issued_at = None
        self._ttl_seconds = None
