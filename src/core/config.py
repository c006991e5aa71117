"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Clientes de custodios y keyring leen timeouts y modo dev de forma consistente.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "custodial-keyring"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "custodial-keyring"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "custodial-keyring"
    return Path.home() / ".config" / "custodial-keyring"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str], *, env_path: Path | None = None) -> Path:
    """Escribe/actualiza variables en el .env global del usuario."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# custodial-keyring user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    `dev_mode` selecciona el modo permisivo: se confía en el entorno/nombre
    que envía el custodio al crear cuentas y los errores de `submit_request`
    no se enmascaran.
    """

    model_config = SettingsConfigDict(
        env_prefix="CUSTODIAL_KEYRING_",
        extra="ignore",
        case_sensitive=False,
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    http_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Timeout por request hacia custodios y endpoints de refresh (segundos).",
    )
    user_agent: str = Field(
        default="custodial-keyring/0.1",
        min_length=1,
        description="User-Agent para las llamadas JSON-RPC.",
    )
    dev_mode: bool = Field(
        default=False,
        description="Modo desarrollo: custodios fuera de la allow-list y errores sin enmascarar.",
    )
    log_level: str = Field(
        default="INFO",
        description="Nivel de logging (DEBUG, INFO, WARNING, ERROR).",
    )
    unexpected_error_message: str = Field(
        default="An unexpected error occurred",
        min_length=1,
        description="Mensaje genérico que reemplaza errores internos en modo estricto.",
    )
