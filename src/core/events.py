"""Canal de eventos tipado (suscripción explícita).

Los clientes de custodio publican `RefreshTokenRotated` / `TokenExpired` y el
keyring se suscribe una vez por cliente construido. La suscripción devuelve un
handle para desuscribirse cuando el cliente sale del registry.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Generic, TypeVar, Union

logger = logging.getLogger(__name__)

E = TypeVar("E")

Handler = Callable[[E], Union[None, Awaitable[None]]]


class Subscription(Generic[E]):
    """Handle devuelto por `EventChannel.subscribe`."""

    def __init__(self, channel: "EventChannel[E]", handler: Handler[E]) -> None:
        self._channel = channel
        self._handler = handler
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._channel._remove(self)


class EventChannel(Generic[E]):
    """Entrega síncrona a los suscriptores actuales, en orden de suscripción.

    Si un handler devuelve una corrutina, se programa como task en el loop
    activo; sus errores se registran en el log y nunca llegan al emisor.
    """

    def __init__(self) -> None:
        self._subscriptions: list[Subscription[E]] = []
        self._pending: set[asyncio.Task[Any]] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, handler: Handler[E]) -> Subscription[E]:
        subscription = Subscription(self, handler)
        self._subscriptions.append(subscription)
        return subscription

    def _remove(self, subscription: Subscription[E]) -> None:
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            pass

    def emit(self, event: E) -> None:
        for subscription in list(self._subscriptions):
            try:
                result = subscription._handler(event)
            except Exception:
                logger.exception("Event handler failed for %s", type(event).__name__)
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._pending.add(task)
                task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Async event handler failed: %s", exc, exc_info=exc)

    async def drain(self) -> None:
        """Espera a que terminen los handlers asíncronos en curso."""

        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
