"""Clientes de custodio (una clase por generación del protocolo).

La generación se elige en runtime por `custodian_type` mediante la tabla
`CUSTODIAN_CLIENTS`; ambas clases implementan `core.interfaces.custodian_api.CustodianApi`.
"""

from __future__ import annotations

from typing import Callable

from adapters.custodians.eca1 import Eca1Client
from adapters.custodians.eca3 import Eca3Client
from core.config import AppSettings
from core.domain.errors import UnsupportedCustodianType
from core.domain.models import CustodianDetails, CustodianType
from core.interfaces.custodian_api import CustodianApi

CustodianClientFactory = Callable[..., CustodianApi]

CUSTODIAN_CLIENTS: dict[CustodianType, CustodianClientFactory] = {
    CustodianType.ECA1: Eca1Client,
    CustodianType.ECA3: Eca3Client,
}


def build_custodian_client(
    details: CustodianDetails,
    settings: AppSettings | None = None,
) -> CustodianApi:
    """Construye el cliente para `details`; falla antes de construir si el tipo no existe."""

    factory = CUSTODIAN_CLIENTS.get(details.custodian_type)
    if factory is None:
        raise UnsupportedCustodianType(details.custodian_type)
    return factory(
        refresh_token=details.token,
        api_base_url=details.custodian_api_url,
        refresh_token_url=details.refresh_token_url,
        settings=settings,
    )


__all__ = [
    "CUSTODIAN_CLIENTS",
    "CustodianClientFactory",
    "Eca1Client",
    "Eca3Client",
    "build_custodian_client",
]
