from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, NewType, Optional, TypeVar

from .logging_utils import create_session_id


# Opaque, extensible tag naming a candidate domain
SessionType = NewType("SessionType", str)

GENERAL = SessionType("general")
FILE = SessionType("file")
BUFFER = SessionType("buffer")
SYMBOL = SessionType("symbol")
PACKAGE = SessionType("package")
URL = SessionType("url")

# Key used in type-indexed maps for "any other type"
WILDCARD = "*"

T = TypeVar("T")


def by_type(mapping: Mapping[str, T], session_type: str, default: Optional[T] = None) -> Optional[T]:
    """Look up a type-indexed map, falling back to its wildcard entry."""
    if session_type in mapping:
        return mapping[session_type]
    return mapping.get(WILDCARD, default)


class TargetSlot:
    """Holds the target string of one action cycle.

    Reading the target with `take()` empties the slot, so every target is
    consumed at most once.
    """

    __slots__ = ("_value",)

    def __init__(self, value: Optional[str] = None):
        self._value = value

    def take(self) -> Optional[str]:
        value, self._value = self._value, None
        return value

    def peek(self) -> Optional[str]:
        return self._value

    @property
    def pending(self) -> bool:
        return self._value is not None

    def __repr__(self) -> str:
        return f"TargetSlot({self._value!r})"


@dataclass(frozen=True)
class Context:
    """Immutable snapshot of whatever selection session the host has open."""
    prompt_active: bool = False
    prompt_text: str = ""
    input: str = ""
    category: Optional[str] = None
    candidates: tuple[str, ...] = ()
    current_match: Optional[str] = None
    command: Optional[str] = None       # command that opened the prompt
    view_id: Optional[str] = None
    at_point: Optional[str] = None
    region: Optional[str] = None


@dataclass
class Session:
    """Transient record governing one dispatch-to-action cycle."""
    type: SessionType
    target: TargetSlot
    target_location: Optional[str] = None
    originating_command: Optional[str] = None
    context: Context = field(default_factory=Context)
    id: str = field(default_factory=create_session_id)


@dataclass(frozen=True)
class CachedView:
    session_type: SessionType
    target_location: Optional[str] = None


class ViewCache:
    """Per-view side table remembering the type and origin of derived views."""

    def __init__(self) -> None:
        self._entries: dict[str, CachedView] = {}

    def remember(self, view_id: str, session_type: str, target_location: Optional[str] = None) -> None:
        self._entries[view_id] = CachedView(SessionType(session_type), target_location)

    def forget(self, view_id: str) -> None:
        self._entries.pop(view_id, None)

    def get(self, view_id: Optional[str]) -> Optional[CachedView]:
        if view_id is None:
            return None
        return self._entries.get(view_id)

    def classify(self, context: Context) -> Optional[str]:
        entry = self.get(context.view_id)
        return entry.session_type if entry else None

    def location_for(self, view_id: Optional[str]) -> Optional[str]:
        entry = self.get(view_id)
        return entry.target_location if entry else None

    def __contains__(self, view_id: object) -> bool:
        return view_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
