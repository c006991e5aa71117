"""Taxonomía de errores del keyring custodial.

Las familias (`ValidationError`, `NotFoundError`, ...) deciden cómo se
propaga un fallo: validación y not-found llegan al caller tal cual; el resto
se enmascara en modo estricto durante `submit_request`.
"""

from __future__ import annotations


class KeyringError(Exception):
    """Raíz de todos los errores del keyring."""


class ValidationError(KeyringError):
    """Entrada malformada (se expone sin modificar)."""


class NotFoundError(KeyringError):
    """Cuenta, wallet o request inexistente."""


class AccountNotFound(NotFoundError):
    def __init__(self, account_id: str) -> None:
        super().__init__(f"Account '{account_id}' not found")
        self.account_id = account_id


class WalletNotFound(NotFoundError):
    def __init__(self, address: str) -> None:
        super().__init__(f"Wallet for account {address} does not exist")
        self.address = address


class RequestNotFound(NotFoundError):
    def __init__(self, request_id: str) -> None:
        super().__init__(f"Request '{request_id}' not found")
        self.request_id = request_id


class UnsupportedOperationError(KeyringError):
    """Método fuera del set de la cuenta u operación no implementada."""


class UnsupportedMethod(UnsupportedOperationError):
    def __init__(self, method: str, address: str | None = None) -> None:
        if address is None:
            message = f"EVM method '{method}' not supported"
        else:
            message = f"Method '{method}' not supported for account '{address}'"
        super().__init__(message)
        self.method = method
        self.address = address


class MethodNotSupported(UnsupportedOperationError):
    def __init__(self, method: str) -> None:
        super().__init__(f"Method '{method}' is not supported")
        self.method = method


class NotImplementedOperation(UnsupportedOperationError):
    def __init__(self, operation: str) -> None:
        super().__init__(f"Method not implemented: {operation}")
        self.operation = operation


class CustodianProtocolError(KeyringError):
    """Fallo de red/decodificación hablando con el custodio."""


class CustodianCallFailed(CustodianProtocolError):
    def __init__(self, operation: str, cause: object, *, prefix: str | None = None) -> None:
        detail = f"{prefix}: {cause}" if prefix else f"Custodian call '{operation}' failed: {cause}"
        super().__init__(detail)
        self.operation = operation
        self.cause = cause


class AccessTokenRequestFailed(CustodianProtocolError):
    def __init__(self, status: int | None, message: str | None) -> None:
        super().__init__(
            f"Error getting the Access Token: Request failed with status {status}: {message}"
        )
        self.status = status
        self.detail = message


class TokenLifecycleError(KeyringError):
    """El refresh token dejó de ser válido."""


class RefreshTokenInvalid(TokenLifecycleError):
    def __init__(self, url: str) -> None:
        super().__init__("Error getting the Access Token: Refresh token provided is no longer valid.")
        self.url = url


class PolicyError(KeyringError):
    """Violación de política (dirección duplicada, custodio desconocido)."""


class DuplicateAddress(PolicyError):
    def __init__(self, address: str) -> None:
        super().__init__(f"Account address already in use: {address}")
        self.address = address


class UnknownCustodian(PolicyError):
    def __init__(self, api_url: str) -> None:
        super().__init__(f"No custodian allowlisted for API URL: {api_url}")
        self.api_url = api_url


class UnsupportedCustodianType(PolicyError):
    def __init__(self, custodian_type: object) -> None:
        super().__init__(f"Custodian type {custodian_type} not supported")
        self.custodian_type = custodian_type


class NotCached(KeyringError):
    """Lectura del cache de access token sin valor almacenado."""


class AccountRejected(KeyringError):
    """El sistema externo rechazó (veto) el registro de la cuenta."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason
