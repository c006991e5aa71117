"""Primitivas de codificación: direcciones EIP-55 y chain ids CAIP-2."""

from __future__ import annotations

from eth_utils import is_hex_address, to_checksum_address

from core.domain.errors import ValidationError

_CAIP2_PREFIX = "eip155:"


def normalize_address(address: str) -> str:
    """Forma checksum (EIP-55); variantes de mayúsculas mapean al mismo valor."""

    if not isinstance(address, str) or not is_hex_address(address):
        raise ValidationError(f"Invalid Ethereum address: {address!r}")
    return to_checksum_address(address)


def to_caip2_chain_id(chain_id: str | int) -> str:
    """`0x1` / `1` / `eip155:1` -> `eip155:1`."""

    if isinstance(chain_id, bool):
        raise ValidationError(f"Invalid chain id: {chain_id!r}")
    if isinstance(chain_id, int):
        return f"{_CAIP2_PREFIX}{chain_id}"

    value = str(chain_id).strip()
    if value.startswith(_CAIP2_PREFIX):
        value = value[len(_CAIP2_PREFIX):]
    try:
        number = int(value, 16) if value.lower().startswith("0x") else int(value, 10)
    except ValueError as exc:
        raise ValidationError(f"Invalid chain id: {chain_id!r}") from exc
    return f"{_CAIP2_PREFIX}{number}"


def to_hex_quantity(value: str | int | None) -> str | None:
    """Normaliza cantidades (wei, gas, nonce) a hex con prefijo `0x`."""

    if value is None:
        return None
    if isinstance(value, int):
        return hex(value)
    text = value.strip()
    if not text:
        return None
    if text.lower().startswith("0x"):
        return "0x" + (text[2:].lower().lstrip("0") or "0")
    try:
        return hex(int(text, 10))
    except ValueError as exc:
        raise ValidationError(f"Invalid numeric value: {value!r}") from exc
