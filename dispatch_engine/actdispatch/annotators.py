"""Per-type annotators: candidate -> short description line or None.

Annotators are total. They never raise and never import anything, so they
are safe to run over every row of a Browser view.
"""

from __future__ import annotations

import inspect
import sys
from datetime import datetime
from importlib import metadata
from pathlib import Path
from typing import Any, Callable, Optional

from .session import FILE, PACKAGE, SYMBOL

Annotator = Callable[[str], Optional[str]]

_MISSING = object()


def human_size(size: int) -> str:
    value = float(size)
    for unit in ("B", "K", "M", "G"):
        if value < 1024 or unit == "G":
            return f"{value:.0f}{unit}" if unit == "B" else f"{value:.1f}{unit}"
        value /= 1024
    return f"{value:.1f}G"


def file_annotation(candidate: str) -> Optional[str]:
    try:
        path = Path(candidate).expanduser()
        stat = path.stat()
    except (OSError, ValueError):
        return None
    modified = datetime.fromtimestamp(stat.st_mtime).strftime("%Y-%m-%d %H:%M")
    if path.is_dir():
        return f"dir  {modified}"
    return f"{human_size(stat.st_size)}  {modified}"


def _lookup_loaded(name: str) -> Any:
    """Resolve a dotted name against modules that are already imported."""
    parts = name.split(".")
    for split in range(len(parts), 0, -1):
        module = sys.modules.get(".".join(parts[:split]))
        if module is None:
            continue
        obj: Any = module
        for attr in parts[split:]:
            obj = getattr(obj, attr, _MISSING)
            if obj is _MISSING:
                return _MISSING
        return obj
    builtins = sys.modules["builtins"]
    if len(parts) == 1:
        return getattr(builtins, name, _MISSING)
    return _MISSING


def symbol_annotation(candidate: str) -> Optional[str]:
    try:
        obj = _lookup_loaded(candidate)
        if obj is _MISSING:
            return None
        doc = inspect.getdoc(obj)
    except Exception:
        return None
    if not doc:
        return None
    return doc.strip().splitlines()[0]


def package_annotation(candidate: str) -> Optional[str]:
    try:
        meta = metadata.metadata(candidate)
    except (metadata.PackageNotFoundError, ValueError):
        return None
    summary = meta.get("Summary") or ""
    version = meta.get("Version") or ""
    line = f"{version}  {summary}".strip()
    return line or None


DEFAULT_ANNOTATORS: dict[str, Annotator] = {
    FILE: file_annotation,
    SYMBOL: symbol_annotation,
    PACKAGE: package_annotation,
}
