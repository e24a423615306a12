"""File IO helpers shared by the settings store and the agent channel."""

from __future__ import annotations

import codecs
import json
import os
import tempfile
from pathlib import Path
from typing import Any

__all__ = [
    "read_text",
    "write_text",
    "read_json",
    "write_json",
]

_BOM_MAP: dict[bytes, str] = {
    codecs.BOM_UTF8: "utf-8-sig",
    codecs.BOM_UTF16_LE: "utf-16-le",
    codecs.BOM_UTF16_BE: "utf-16-be",
}


def read_text(path: Path | str, *, encoding: str | None = None) -> str:
    """Read a text file, honouring a BOM and normalizing newlines to ``\\n``."""

    raw = Path(path).read_bytes()
    detected = encoding or _detect_encoding(raw)
    text = raw.decode(detected)
    if text.startswith("\ufeff"):
        text = text[1:]
    return text.replace("\r\n", "\n").replace("\r", "\n")


def write_text(path: Path | str, content: str, *, encoding: str = "utf-8") -> Path:
    """Write ``content`` atomically: readers never observe a partial file."""

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    descriptor, tmp_name = tempfile.mkstemp(
        dir=str(target.parent), prefix=f".{target.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(descriptor, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, target)
    finally:
        if os.path.exists(tmp_name):  # pragma: no cover - cleanup path
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
    return target


def read_json(path: Path | str) -> Any:
    """Load JSON from ``path``; raises ``FileNotFoundError``/``ValueError``."""

    return json.loads(read_text(path))


def write_json(path: Path | str, payload: Any) -> Path:
    body = json.dumps(payload, indent=2, sort_keys=True)
    return write_text(path, body + "\n")


def _detect_encoding(raw: bytes) -> str:
    for bom, name in _BOM_MAP.items():
        if raw.startswith(bom):
            return name
    return "utf-8"
