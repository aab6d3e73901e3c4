"""Exportación JSON del snapshot de blogs.

Por qué JSON:
- Interoperabilidad con scripts y pipelines (backups, diffs entre entornos).
- Permite inspeccionar el estado del cache sin volver a llamar al servidor.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable

from core.domain.models import BlogEntity


def export_blogs_json(*, blogs: Iterable[BlogEntity], output_path: Path) -> Path:
    """Exporta los blogs a JSON UTF-8 con formato estable."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = [blog.model_dump(mode="json") for blog in blogs]
    output_path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )
    return output_path
