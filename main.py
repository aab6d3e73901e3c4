"""Ejecuta blogdesk desde un checkout, sin instalarlo.

Uso:
- `python main.py login`
- `python main.py blogs list --search python`

Nota:
- Todo el código vive bajo `src/`; este script lo añade a `sys.path` y delega
  en la misma función que el script `blogdesk` instalado.
"""

from __future__ import annotations

import sys
from pathlib import Path

SRC_DIR = Path(__file__).resolve().parent / "src"


def main() -> None:
    if str(SRC_DIR) not in sys.path:
        sys.path.insert(0, str(SRC_DIR))

    # Rich tables use box-drawing characters; cp1252 consoles cannot encode them.
    if sys.platform == "win32":
        sys.stdout.reconfigure(encoding="utf-8")
        sys.stderr.reconfigure(encoding="utf-8")

    from cli.main import run  # noqa: PLC0415

    run()


if __name__ == "__main__":
    main()
