"""Entry point de desarrollo sin instalar el paquete.

`python -m main custodians` funciona desde la raíz del repo: agrega `src/`
al `sys.path` antes de importar la CLI.
"""

from __future__ import annotations

import sys
from pathlib import Path


def main() -> None:
    src = Path(__file__).resolve().parent / "src"
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))

    from cli.main import run  # noqa: PLC0415

    run()


if __name__ == "__main__":
    main()
