"""Interfaces of the host environment the dispatch engine runs inside.

The engine never renders prompts or views and never runs host commands by
itself; it talks to these collaborators instead.
"""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional, Protocol, Sequence

if TYPE_CHECKING:
    from .controller import TransientScope

_prompt_ids = itertools.count(1)


@dataclass
class Prompt:
    """An interactive prompt opened by the host."""
    text: str
    command: Optional[str] = None
    content: str = ""
    reads_command_name: bool = False
    confirmed: bool = False
    id: int = field(default_factory=lambda: next(_prompt_ids))


PromptHook = Callable[[Prompt], None]


class PromptManager(Protocol):
    def add_setup_hook(self, hook: PromptHook, *, first: bool = False) -> None:
        """Run `hook` whenever a prompt is created."""
        ...

    def remove_setup_hook(self, hook: PromptHook) -> None: ...

    def add_post_input_hook(self, hook: Callable[[], None]) -> None:
        """Run `hook` after each input event."""
        ...

    def remove_post_input_hook(self, hook: Callable[[], None]) -> None: ...

    def replace_content(self, prompt: Prompt, text: str) -> None: ...

    def confirm(self, prompt: Prompt) -> None: ...

    def depth(self) -> int: ...

    def unwind(self, on_complete: Callable[[], None]) -> None:
        """Tear down every open prompt, then call `on_complete`."""
        ...


class ViewManager(Protocol):
    def current_view(self) -> Optional[str]: ...

    def select_view(self, view_id: str) -> None: ...

    def insert(self, view_id: Optional[str], text: str) -> None: ...

    def create_view(self, name: str, lines: Sequence[str], *, kind: str) -> str: ...

    def update_view(self, view_id: str, lines: Sequence[str]) -> None: ...

    def viewport_width(self, view_id: Optional[str] = None) -> int: ...

    def set_view_bindings(self, view_id: str, bindings: Optional[Mapping[str, Callable[[], Any]]]) -> None:
        """Bind zero-argument commands directly in a view, None clears them."""
        ...

    def message(self, text: str) -> None: ...

    def show_indicator(self, text: str, view_id: Optional[str], *, style: str) -> Any: ...

    def remove_indicator(self, handle: Any) -> None: ...

    def set_output_suppressed(self, suppressed: bool) -> None: ...

    def push_kill(self, text: str) -> None: ...


class KeyInput(Protocol):
    def push_scope(self, scope: "TransientScope") -> None: ...

    def pop_scope(self, scope: "TransientScope") -> None: ...


class CommandRunner(Protocol):
    def run_command(self, name: str, arg: Optional[int] = None) -> Any:
        """Run an interactive host command, which may open prompts."""
        ...


class Scheduler(Protocol):
    def call_soon(self, callback: Callable[[], None]) -> None: ...


@dataclass
class Host:
    prompts: PromptManager
    views: ViewManager
    keys: KeyInput
    commands: CommandRunner
    scheduler: Scheduler


class AsyncioScheduler:
    """Run-once-soon primitive on top of an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_soon(self, callback: Callable[[], None]) -> None:
        self.loop.call_soon(callback)
