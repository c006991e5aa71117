"""Llamadas JSON-RPC 2.0 autenticadas con bearer token."""

from __future__ import annotations

import itertools
from typing import Any

import httpx

from adapters.http_client import build_async_client
from core.config import AppSettings
from core.domain.errors import CustodianCallFailed

_METHOD_PREFIX = "custodian_"


def operation_name(method: str) -> str:
    return method[len(_METHOD_PREFIX):] if method.startswith(_METHOD_PREFIX) else method


class JsonRpcCaller:
    """POST a `{api_base_url}/v{n}/json-rpc`; devuelve el miembro `result`.

    Fallo HTTP, status no exitoso, JSON inválido o miembro `error` se
    convierten en `CustodianCallFailed` con el nombre de la operación.
    """

    def __init__(self, url: str, settings: AppSettings | None = None) -> None:
        self._url = url
        self._settings = settings or AppSettings()
        self._ids = itertools.count(1)

    @property
    def url(self) -> str:
        return self._url

    async def call(self, method: str, params: Any, access_token: str) -> Any:
        operation = operation_name(method)
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        headers = {"Authorization": f"Bearer {access_token}"}

        try:
            async with build_async_client(self._settings, extra_headers=headers) as client:
                response = await client.post(self._url, json=payload)
        except httpx.HTTPError as exc:
            raise CustodianCallFailed(operation, exc) from exc

        if not response.is_success:
            raise CustodianCallFailed(operation, f"HTTP {response.status_code}: {response.text[:200]}")

        try:
            body = response.json()
        except ValueError as exc:
            raise CustodianCallFailed(operation, "invalid JSON response") from exc

        if not isinstance(body, dict):
            raise CustodianCallFailed(operation, "malformed JSON-RPC response")

        error = body.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise CustodianCallFailed(operation, message or "unknown JSON-RPC error")

        return body.get("result")
