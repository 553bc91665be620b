from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Iterable, Iterator, Mapping, Optional

from .session import GENERAL, SessionType

if TYPE_CHECKING:
    from .controller import ActionContext


@dataclass(frozen=True)
class Command:
    """A named action handler.

    `unwinds` is False for commands that must run in place even when the
    caller asked to exit every prompt first (cancel, undefined keys).
    """
    name: str
    fn: Callable[["ActionContext"], Any]
    unwinds: bool = True
    description: str = ""

    def __call__(self, ctx: "ActionContext") -> Any:
        return self.fn(ctx)


@dataclass(frozen=True)
class ActionBinding:
    trigger: str
    command: Command


class KeymapNode:
    """Local trigger bindings plus an optional parent to fall back to.

    Nodes are immutable once built. The parent must already exist when a
    node is constructed, so parent chains always terminate.
    """

    def __init__(self, name: str, bindings: Iterable[tuple[str, Command]] = (),
                 parent: Optional["KeymapNode"] = None):
        self.name = name
        self._parent = parent
        # Later pairs override earlier ones for the same trigger
        self._bindings: Mapping[str, Command] = MappingProxyType(dict(bindings))

    @property
    def parent(self) -> Optional["KeymapNode"]:
        return self._parent

    @property
    def bindings(self) -> Mapping[str, Command]:
        return self._bindings

    def local(self, trigger: str) -> Optional[Command]:
        return self._bindings.get(trigger)

    def lookup(self, trigger: str) -> Optional[Command]:
        """Resolve a trigger here first, then through the parent chain."""
        command = self._bindings.get(trigger)
        if command is not None:
            return command
        if self._parent is not None:
            return self._parent.lookup(trigger)
        return None

    def owner(self, trigger: str) -> Optional["KeymapNode"]:
        for node in self.chain():
            if trigger in node.bindings:
                return node
        return None

    def chain(self) -> Iterator["KeymapNode"]:
        node: Optional[KeymapNode] = self
        while node is not None:
            yield node
            node = node.parent

    def root(self) -> "KeymapNode":
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    def flatten(self) -> dict[str, Command]:
        """Every reachable binding, nearer nodes shadowing their ancestors."""
        flat: dict[str, Command] = {}
        for node in reversed(list(self.chain())):
            flat.update(node.bindings)
        return flat

    def describe(self) -> list[tuple[str, str, str]]:
        """(trigger, command name, owning node name) rows for help output."""
        rows = []
        for trigger, command in sorted(self.flatten().items()):
            owner = self.owner(trigger)
            rows.append((trigger, command.name, owner.name if owner else self.name))
        return rows

    def __repr__(self) -> str:
        parent = self._parent.name if self._parent else None
        return f"KeymapNode({self.name!r}, {len(self._bindings)} bindings, parent={parent!r})"


class ActionRegistry:
    """Maps session types to keymaps, all descending from the general keymap."""

    def __init__(self, general: KeymapNode, keymaps: Optional[Mapping[str, KeymapNode]] = None):
        if general.parent is not None:
            raise ValueError("The general keymap must not have a parent")
        self.general = general
        self._keymaps: dict[str, KeymapNode] = {GENERAL: general}
        for session_type, node in (keymaps or {}).items():
            self.register(session_type, node)

    def register(self, session_type: str, node: KeymapNode) -> KeymapNode:
        if session_type == GENERAL:
            if node is not self.general:
                raise ValueError("The general keymap is fixed when the registry is built")
            return node
        if node.root() is not self.general:
            raise ValueError(f"Keymap '{node.name}' does not descend from the general keymap")
        self._keymaps[session_type] = node
        return node

    def define(self, session_type: str, bindings: Iterable[tuple[str, Command]],
               parent: str = GENERAL) -> KeymapNode:
        """Build and register a keymap whose parent is another registered type."""
        if parent not in self._keymaps:
            raise ValueError(f"Unknown parent keymap '{parent}' for '{session_type}'")
        node = KeymapNode(f"{session_type}-map", bindings, parent=self._keymaps[parent])
        return self.register(session_type, node)

    def lookup_keymap(self, session_type: str) -> KeymapNode:
        return self._keymaps.get(session_type, self.general)

    def types(self) -> list[SessionType]:
        return [SessionType(t) for t in self._keymaps]

    def __contains__(self, session_type: object) -> bool:
        return session_type in self._keymaps
