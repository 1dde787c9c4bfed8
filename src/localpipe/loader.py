# loader.py
from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from .errors import SchemaError


def parse_document(text: str, source: str = "<string>") -> Any:
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise SchemaError(
            message=f"could not parse YAML in {source}",
            details={"error": str(e).replace("\n", " ")},
        ) from e


def load_document(path: str | Path) -> Any:
    """Decode one pipeline file. Raises FileNotFoundError or SchemaError."""
    p = Path(path).expanduser()
    if not p.is_file():
        raise FileNotFoundError(f"Pipeline file not found: {p}")
    return parse_document(p.read_text(encoding="utf-8"), source=str(p))
