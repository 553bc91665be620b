from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence

from .session import Context

logger = logging.getLogger(__name__)

TargetResolver = Callable[[Context], Optional[str]]
CandidateCollector = Callable[[Context], Sequence[str]]

URL_RE = re.compile(r"^(?:https?|ftp)://[^\s]+$", re.IGNORECASE)
SYMBOL_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*$")


class NoTargetError(Exception):
    """Nothing usable to act on; reported to the user, never fatal."""

    def __init__(self, message: str = "No target found"):
        super().__init__(message)


class TargetResolverChain:
    """Ordered resolvers producing the primary target string.

    Absence is a normal answer: `resolve()` returns None when every
    resolver comes back empty. A resolver may raise `NoTargetError` to
    report why nothing applies; that error reaches the caller as is.
    """

    def __init__(self, resolvers: Iterable[TargetResolver] = ()):
        self._resolvers: list[TargetResolver] = list(resolvers)

    def register(self, resolver: TargetResolver, *, first: bool = False) -> None:
        if first:
            self._resolvers.insert(0, resolver)
        else:
            self._resolvers.append(resolver)

    @property
    def resolvers(self) -> tuple[TargetResolver, ...]:
        return tuple(self._resolvers)

    def resolve(self, context: Context) -> Optional[str]:
        for resolver in self._resolvers:
            target = resolver(context)
            if target:
                logger.debug(f"🎯 {_name(resolver)} resolved target: '{target}'")
                return target
        logger.debug("❌ No resolver produced a target")
        return None


class CandidateCollectorChain:
    """Ordered collectors producing the full candidate list for browsing.

    Collectors return an empty sequence when their domain does not apply;
    the first non-empty result wins.
    """

    def __init__(self, collectors: Iterable[CandidateCollector] = ()):
        self._collectors: list[CandidateCollector] = list(collectors)

    def register(self, collector: CandidateCollector, *, first: bool = False) -> None:
        if first:
            self._collectors.insert(0, collector)
        else:
            self._collectors.append(collector)

    def collect(self, context: Context) -> list[str]:
        for collector in self._collectors:
            candidates = collector(context)
            if candidates:
                logger.debug(f"📋 {_name(collector)} collected {len(candidates)} candidates")
                return list(candidates)
        return []


def _name(fn: Callable) -> str:
    return getattr(fn, "__qualname__", None) or getattr(fn, "__name__", repr(fn))


# Target resolvers

def top_completion(context: Context) -> Optional[str]:
    """Best current match of the open prompt, else its raw input."""
    if not context.prompt_active:
        return None
    if context.current_match:
        return context.current_match
    if context.candidates:
        return context.candidates[0]
    return context.input or None


def active_region(context: Context) -> Optional[str]:
    if context.region and context.region.strip():
        return context.region
    return None


def url_at_point(context: Context) -> Optional[str]:
    thing = (context.at_point or "").strip()
    if URL_RE.match(thing):
        return thing
    return None


def file_at_point(context: Context) -> Optional[str]:
    thing = (context.at_point or "").strip()
    if not thing or "\n" in thing:
        return None
    try:
        if Path(thing).expanduser().exists():
            return thing
    except (OSError, ValueError):
        return None
    return None


def symbol_at_point(context: Context) -> Optional[str]:
    thing = (context.at_point or "").strip()
    if SYMBOL_RE.match(thing):
        return thing
    return None


# Candidate collectors

def prompt_candidates(context: Context) -> list[str]:
    if not context.prompt_active:
        return []
    return list(context.candidates)
