from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from .session import BUFFER, GENERAL, PACKAGE, SYMBOL, Context, SessionType

logger = logging.getLogger(__name__)

Classifier = Callable[[Context], Optional[str]]

# Prompt-opening commands whose candidates are known without a category
SYMBOL_COMMANDS = frozenset({
    "describe-symbol",
    "describe-function",
    "describe-variable",
    "describe-command",
    "pydoc",
})
PACKAGE_COMMANDS = frozenset({
    "package-install",
    "package-delete",
    "describe-package",
    "pip-install",
    "pip-uninstall",
})
BUFFER_COMMANDS = frozenset({
    "switch-to-buffer",
    "switch-to-buffer-other-window",
    "kill-buffer",
    "display-buffer",
})


class ClassifierChain:
    """Ordered classifiers mapping a context snapshot to a session type.

    The first classifier returning a non-empty result wins; when none
    does, the chain answers with its default (`general`).
    """

    def __init__(self, classifiers: Iterable[Classifier] = (), default: str = GENERAL):
        self._classifiers: list[Classifier] = list(classifiers)
        self.default = SessionType(default)

    def register(self, classifier: Classifier, *, first: bool = False) -> None:
        if first:
            self._classifiers.insert(0, classifier)
        else:
            self._classifiers.append(classifier)

    @property
    def classifiers(self) -> tuple[Classifier, ...]:
        return tuple(self._classifiers)

    def classify(self, context: Context) -> SessionType:
        for classifier in self._classifiers:
            result = classifier(context)
            if result:
                logger.debug(f"🏷️ {_name(classifier)} classified context as '{result}'")
                return SessionType(result)
        return self.default


def _name(fn: Callable) -> str:
    return getattr(fn, "__qualname__", None) or getattr(fn, "__name__", repr(fn))


def category_type(context: Context) -> Optional[str]:
    """Use the completion category announced by the prompt."""
    if not context.prompt_active:
        return None
    return context.category or None


def by_category(category: str) -> Classifier:
    """Classifier matching one specific completion category."""
    def classify(context: Context) -> Optional[str]:
        if context.category == category:
            return category
        return None
    classify.__qualname__ = f"by_category({category!r})"
    return classify


def symbol_prompt_type(context: Context) -> Optional[str]:
    if context.prompt_active and context.command in SYMBOL_COMMANDS:
        return SYMBOL
    return None


def package_prompt_type(context: Context) -> Optional[str]:
    if context.prompt_active and context.command in PACKAGE_COMMANDS:
        return PACKAGE
    return None


def buffer_prompt_type(context: Context) -> Optional[str]:
    if context.prompt_active and context.command in BUFFER_COMMANDS:
        return BUFFER
    return None
