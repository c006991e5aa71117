"""Resolución best-effort del deep link de un request pendiente."""

from __future__ import annotations

import logging
from typing import Literal

from core.domain.models import CustodianDeepLink
from core.interfaces.custodian_api import CustodianApi

logger = logging.getLogger(__name__)

FALLBACK_LINK_TEXT = "Complete in Custodian App"

RequestKind = Literal["transaction", "message"]


def fallback_deep_link(custodian_id: str) -> CustodianDeepLink:
    return CustodianDeepLink(text=FALLBACK_LINK_TEXT, id=custodian_id, url="", action="view")


class DeepLinkResolver:
    """Pide al custodio el enlace de aprobación; nunca propaga errores.

    Los custodios pueden no implementar los métodos de link (o implementarlos
    más adelante), así que cualquier fallo devuelve el placeholder genérico.
    """

    async def resolve(self, kind: RequestKind, client: CustodianApi, custodian_id: str) -> CustodianDeepLink:
        try:
            if kind == "transaction":
                link = await client.get_transaction_link(custodian_id)
            else:
                link = await client.get_signed_message_link(custodian_id)
        except Exception as exc:
            logger.warning("Error getting deep link for %s %s: %s", kind, custodian_id, exc)
            return fallback_deep_link(custodian_id)

        if link is None:
            return fallback_deep_link(custodian_id)
        return link

    @staticmethod
    def render_text(link: CustodianDeepLink) -> str:
        return f"{link.text} Transaction ID: {link.id}"
