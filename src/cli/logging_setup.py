"""Logging de la CLI (un único RichHandler en el root logger)."""

from __future__ import annotations

import logging

from rich.logging import RichHandler

_HANDLER_NAME = "custodial-keyring-rich"


def configure_logging(level: str | int = "INFO") -> None:
    """Instala el handler una sola vez; llamadas repetidas solo ajustan el nivel."""

    root = logging.getLogger()
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    root.setLevel(level)

    if any(handler.get_name() == _HANDLER_NAME for handler in root.handlers):
        return

    handler = RichHandler(rich_tracebacks=True, show_path=False, markup=False)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root.addHandler(handler)

    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
