"""Allow-list de custodios conocidos.

`create_account` la consulta por `custodian_api_url` para obtener el nombre
canónico del entorno y saber si el custodio publica las transacciones él mismo.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from core.domain.models import CustodianType


class CustodianMetadata(BaseModel):
    api_base_url: str = Field(..., min_length=1)
    refresh_token_url: str | None = None
    name: str = Field(..., min_length=1)
    legacy_name: str | None = None
    display_name: str | None = None
    production: bool = False
    hide_from_ui: bool = False
    api_version: CustodianType
    custodian_publishes_transaction: bool = True
    icon_url: str | None = None
    is_manual_token_input_supported: bool = False
    onboarding_url: str | None = None
    allowed_onboarding_domains: list[str] = Field(default_factory=list)


_FIREBLOCKS_ICON = "https://metamask-institutional.io/custodian-icons/fireblocks-icon.svg"
_SAFE_ICON = "https://raw.githubusercontent.com/safe-global/safe-react/dev/public/resources/logo.svg"
_GK8_ICON = "https://www.gk8.io/wp-content/uploads/2021/04/6-layers-4.svg"
_ZODIA_ICON = "https://zodia.io/wp-content/uploads/2023/01/cropped-ico.png"
_NEPTUNE_ICON = "https://metamask-institutional.io/custodian-icons/neptune-icon.svg"
_CUBIST_ICON = (
    "https://assets-global.website-files.com/638a2693daaf8527290065a3/651802cf8d04ec5f1a09ce86_Logo.svg"
)

# Lookup returns the first match, so entries sharing an API URL keep this order.
CUSTODIAN_METADATA: tuple[CustodianMetadata, ...] = (
    CustodianMetadata(
        refresh_token_url="http://localhost:8090/oauth/token",
        name="gk8-prod",
        display_name="GK8 ECA-1",
        production=False,
        api_base_url="http://localhost:8090",
        api_version=CustodianType.ECA1,
        custodian_publishes_transaction=True,
        icon_url=_GK8_ICON,
        is_manual_token_input_supported=True,
        onboarding_url="https://www.gk8.io",
    ),
    CustodianMetadata(
        refresh_token_url="http://localhost:8090/oauth/token",
        name="gk8-eca3-prod",
        display_name="GK8",
        production=True,
        api_base_url="http://localhost:8090",
        api_version=CustodianType.ECA3,
        custodian_publishes_transaction=True,
        icon_url=_GK8_ICON,
        is_manual_token_input_supported=True,
        onboarding_url="https://www.gk8.io",
    ),
    CustodianMetadata(
        refresh_token_url="https://safe-mmi.staging.gnosisdev.com/api/v1/oauth/token/",
        name="gnosis-safe-dev",
        display_name="Safe",
        production=False,
        api_base_url="https://safe-mmi.staging.gnosisdev.com/api",
        api_version=CustodianType.ECA1,
        custodian_publishes_transaction=True,
        icon_url=_SAFE_ICON,
        onboarding_url="https://safe.global",
        allowed_onboarding_domains=["apps-portal.safe.global"],
    ),
    CustodianMetadata(
        refresh_token_url="https://safe-mmi.safe.global/api/v1/oauth/token/",
        name="safe-prod",
        display_name="Safe",
        production=False,
        api_base_url="https://safe-mmi.safe.global/api",
        api_version=CustodianType.ECA1,
        custodian_publishes_transaction=True,
        icon_url=_SAFE_ICON,
        onboarding_url="https://safe.global",
        allowed_onboarding_domains=["apps-portal.safe.global"],
    ),
    CustodianMetadata(
        refresh_token_url="https://safe-mmi.staging.5afe.dev/api/v1/oauth/token/",
        name="gnosis-safe-staging",
        display_name="Gnosis Safe Staging",
        production=False,
        api_base_url="https://safe-mmi.staging.5afe.dev/api",
        api_version=CustodianType.ECA1,
        custodian_publishes_transaction=True,
        icon_url=_SAFE_ICON,
        onboarding_url="https://safe.global",
        allowed_onboarding_domains=["apps-portal.safe.global"],
    ),
    CustodianMetadata(
        refresh_token_url="https://api.mpcvault.com/mmi/token-refresh",
        name="mpcvault-prod",
        display_name="MPCVault",
        production=True,
        api_base_url="https://api.mpcvault.com/mmi",
        api_version=CustodianType.ECA3,
        custodian_publishes_transaction=True,
        icon_url="https://metamask-institutional.io/custodian-icons/mpcvault-icon.svg",
        onboarding_url="https://console.mpcvault.com/",
        allowed_onboarding_domains=["console.mpcvault.com"],
    ),
    CustodianMetadata(
        refresh_token_url="https://api-preprod.uat.zodia.io/oauth/token",
        name="zodia-preprod",
        display_name="Zodia Preprod",
        production=False,
        api_base_url="https://api-preprod.uat.zodia.io",
        api_version=CustodianType.ECA1,
        custodian_publishes_transaction=True,
        icon_url=_ZODIA_ICON,
        onboarding_url="https://zodia.io",
        allowed_onboarding_domains=["ui-preprod-v2.uat.zodia.io"],
    ),
    CustodianMetadata(
        refresh_token_url="https://mmi.fireblocks.io/v1/auth/access",
        name="fireblocks-prod",
        display_name="Fireblocks",
        production=True,
        api_base_url="https://mmi.fireblocks.io",
        api_version=CustodianType.ECA1,
        custodian_publishes_transaction=True,
        icon_url=_FIREBLOCKS_ICON,
        onboarding_url="https://console.fireblocks.io/v2/",
        allowed_onboarding_domains=["console.fireblocks.io"],
    ),
    CustodianMetadata(
        refresh_token_url="https://mmi.fireblocks.io/v1/auth/access",
        name="fireblocks-sandbox",
        display_name="Fireblocks Sandbox",
        production=True,
        hide_from_ui=True,
        api_base_url="https://sandbox.fireblocks.io/",
        api_version=CustodianType.ECA1,
        custodian_publishes_transaction=True,
        icon_url=_FIREBLOCKS_ICON,
        onboarding_url="https://console.fireblocks.io/v2/",
        allowed_onboarding_domains=["sandbox.fireblocks.io"],
    ),
    CustodianMetadata(
        refresh_token_url="https://eu-console.fireblocks.io/v1/auth/access",
        name="fireblocks-eu",
        display_name="Fireblocks EU",
        production=True,
        hide_from_ui=True,
        api_base_url="https://eu-console.fireblocks.io/",
        api_version=CustodianType.ECA1,
        custodian_publishes_transaction=True,
        icon_url=_FIREBLOCKS_ICON,
        onboarding_url="https://eu-console.fireblocks.io/",
        allowed_onboarding_domains=["eu-console.fireblocks.io"],
    ),
    CustodianMetadata(
        refresh_token_url="https://eu2-console.fireblocks.io/v1/auth/access",
        name="fireblocks-eu2",
        display_name="Fireblocks EU2",
        production=True,
        hide_from_ui=True,
        api_base_url="https://eu2-console.fireblocks.io/",
        api_version=CustodianType.ECA1,
        custodian_publishes_transaction=True,
        icon_url=_FIREBLOCKS_ICON,
        onboarding_url="https://eu2-console.fireblocks.io/",
        allowed_onboarding_domains=["eu2-console.fireblocks.io"],
    ),
    CustodianMetadata(
        refresh_token_url="https://local.waterballoons.xyz:4200/v1/auth/access",
        name="waterballoons-local",
        display_name="Waterballoons",
        production=False,
        api_base_url="https://local.waterballoons.xyz:4200",
        api_version=CustodianType.ECA1,
        custodian_publishes_transaction=True,
        icon_url=_NEPTUNE_ICON,
        onboarding_url="https://local.waterballoons.xyz:4200",
        allowed_onboarding_domains=["local.waterballoons.xyz:4200"],
    ),
    CustodianMetadata(
        refresh_token_url="https://local.waterballoons.xyz:4200/v1/auth/access",
        name="waterballoons-dev10",
        display_name="Waterballoons 10",
        production=False,
        api_base_url="https://dev4-console-api.waterballoons.xyz",
        api_version=CustodianType.ECA1,
        custodian_publishes_transaction=True,
        icon_url=_NEPTUNE_ICON,
        onboarding_url="https://dev10-console.waterballoons.xyz",
        allowed_onboarding_domains=["dev10-console.waterballoons.xyz"],
    ),
    CustodianMetadata(
        refresh_token_url="https://local.waterballoons.xyz:4200/v1/auth/access",
        name="waterballoons-dev4",
        display_name="Waterballoons 4",
        production=False,
        api_base_url="https://dev4-console-api.waterballoons.xyz",
        api_version=CustodianType.ECA1,
        custodian_publishes_transaction=True,
        icon_url=_NEPTUNE_ICON,
        onboarding_url="https://dev4-console.waterballoons.xyz",
        allowed_onboarding_domains=["dev4-console.waterballoons.xyz"],
    ),
    CustodianMetadata(
        refresh_token_url="https://zapi.custody.zodia.io/oauth/token",
        name="zodia-prod",
        display_name="Zodia",
        production=True,
        api_base_url="https://zapi.custody.zodia.io",
        api_version=CustodianType.ECA1,
        custodian_publishes_transaction=True,
        icon_url=_ZODIA_ICON,
        onboarding_url="https://zodia.io",
        allowed_onboarding_domains=["zodia.io", "v2.custody.zodia.io"],
    ),
    CustodianMetadata(
        refresh_token_url="https://api.sit.zodia.io/oauth/token",
        name="zodia-sit",
        display_name="Zodia SIT",
        production=False,
        api_base_url="https://api.sit.zodia.io",
        api_version=CustodianType.ECA1,
        custodian_publishes_transaction=True,
        icon_url=_ZODIA_ICON,
        onboarding_url="https://zodia.io",
        allowed_onboarding_domains=["sit.zodia.io", "ui-v2.sit.zodia.io"],
    ),
    CustodianMetadata(
        refresh_token_url="https://api-qa.qa.zodia.io/oauth/token",
        name="zodia-qa",
        display_name="Zodia QA",
        production=False,
        api_base_url="https://api-qa.qa.zodia.io",
        api_version=CustodianType.ECA1,
        custodian_publishes_transaction=True,
        icon_url=_ZODIA_ICON,
        onboarding_url="https://zodia.io",
        allowed_onboarding_domains=["qa.zodia.io", "ui-v2.qa.zodia.io"],
    ),
    CustodianMetadata(
        refresh_token_url="http://localhost:8090/oauth/token",
        name="gk8-eca3-dev",
        display_name="GK8",
        production=False,
        api_base_url="http://localhost:8090",
        api_version=CustodianType.ECA3,
        custodian_publishes_transaction=True,
        icon_url=_GK8_ICON,
        is_manual_token_input_supported=True,
        onboarding_url="https://www.gk8.io",
    ),
    CustodianMetadata(
        refresh_token_url="https://api.dev.mpcvault.com/mmi/token-refresh",
        name="mpcvault-dev",
        display_name="MPCVault",
        production=False,
        api_base_url="https://api.dev.mpcvault.com/mmi",
        api_version=CustodianType.ECA3,
        custodian_publishes_transaction=False,
        icon_url="https://dev.metamask-institutional.io/custodian-icons/mpcvault-icon.svg",
        onboarding_url="https://console.mpcvault.com/",
        allowed_onboarding_domains=["console.dev.mpcvault.com"],
    ),
    CustodianMetadata(
        refresh_token_url="https://gamma.signer.cubist.dev/v0/oauth/token",
        name="cubist-gamma",
        display_name="Cubist Gamma",
        production=False,
        api_base_url="https://gamma.signer.cubist.dev/v0/mmi",
        api_version=CustodianType.ECA3,
        custodian_publishes_transaction=False,
        icon_url=_CUBIST_ICON,
        is_manual_token_input_supported=True,
        allowed_onboarding_domains=["app-gamma.signer.cubist.dev"],
    ),
    CustodianMetadata(
        refresh_token_url="https://beta.signer.cubist.dev/v0/oauth/token",
        name="cubist-beta",
        display_name="Cubist Beta",
        production=False,
        api_base_url="https://beta.signer.cubist.dev/v0/mmi",
        api_version=CustodianType.ECA3,
        custodian_publishes_transaction=False,
        icon_url=_CUBIST_ICON,
        is_manual_token_input_supported=True,
        allowed_onboarding_domains=["app-beta.signer.cubist.dev", "localhost:3000"],
    ),
    CustodianMetadata(
        refresh_token_url="https://dg5z0qnzb9s65.cloudfront.net/v0/oauth/token",
        name="cubist-test",
        display_name="Cubist Test",
        production=False,
        api_base_url="https://dg5z0qnzb9s65.cloudfront.net/v0/mmi",
        api_version=CustodianType.ECA3,
        custodian_publishes_transaction=False,
        icon_url=_CUBIST_ICON,
        is_manual_token_input_supported=True,
    ),
    CustodianMetadata(
        refresh_token_url="https://prod.signer.cubist.dev/v0/oauth/token",
        name="cubist-prod",
        display_name="Cubist",
        production=True,
        api_base_url="https://prod.signer.cubist.dev/v0/mmi",
        api_version=CustodianType.ECA3,
        custodian_publishes_transaction=False,
        icon_url=_CUBIST_ICON,
        is_manual_token_input_supported=True,
        allowed_onboarding_domains=["app.signer.cubist.dev"],
    ),
    CustodianMetadata(
        refresh_token_url="http://localhost:3330/oauth/token",
        name="local-dev",
        display_name="Local Dev",
        production=False,
        api_base_url="http://localhost:3330",
        api_version=CustodianType.ECA3,
        custodian_publishes_transaction=False,
        icon_url="https://dev.metamask-institutional.io/custodian-icons/neptune-icon.svg",
        is_manual_token_input_supported=True,
        allowed_onboarding_domains=["localhost:8000", "http://localhost:8000"],
    ),
)


def find_custodian_by_api_url(
    api_url: str,
    metadata: tuple[CustodianMetadata, ...] | list[CustodianMetadata] = CUSTODIAN_METADATA,
) -> CustodianMetadata | None:
    """Primer custodio de la allow-list cuyo `api_base_url` coincide exactamente."""

    for item in metadata:
        if item.api_base_url == api_url:
            return item
    return None


def visible_custodians(
    metadata: tuple[CustodianMetadata, ...] | list[CustodianMetadata] = CUSTODIAN_METADATA,
    *,
    include_hidden: bool = False,
) -> list[CustodianMetadata]:
    return [item for item in metadata if include_hidden or not item.hide_from_ui]
