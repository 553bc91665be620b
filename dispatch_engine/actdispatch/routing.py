from __future__ import annotations

import shlex
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from .host import Prompt


class InjectionAction(str, Enum):
    """What happens to a prompt after the target was injected."""
    CONFIRM = "confirm"       # Accept the prompt immediately
    EDIT = "edit"             # Leave the prompt open for editing
    SKIP = "skip"             # Do not inject into this prompt at all


@dataclass(frozen=True)
class InjectionDecision:
    action: InjectionAction
    command: Optional[str] = None
    reason: Optional[str] = None


DEFAULT_ALLOW_EDIT_COMMANDS = frozenset({
    "delete-file",
    "delete-directory",
    "kill-buffer",
    "shell-command",
    "async-shell-command",
    "eval-expression",
})

DEFAULT_ACTION = "default-action"


@dataclass(frozen=True)
class InjectionPolicy:
    """Decides whether an injected prompt is confirmed or left for editing.

    `allow_edit_default` picks the behaviour for every command; only the
    override list selecting the opposite of that default is consulted:
    - default False: commands in `allow_edit_commands` stay editable
    - default True: commands in `skip_edit_commands` are confirmed
    """

    allow_edit_default: bool = False
    allow_edit_commands: frozenset[str] = DEFAULT_ALLOW_EDIT_COMMANDS
    skip_edit_commands: frozenset[str] = frozenset()
    default_action: str = DEFAULT_ACTION

    def decide(self, prompt: Prompt, action: Optional[str]) -> InjectionDecision:
        command = prompt.command

        # Choosing a command by name is not the place for the target, unless
        # the action is re-running the originating command itself
        if prompt.reads_command_name and action != self.default_action:
            return InjectionDecision(
                action=InjectionAction.SKIP,
                command=command,
                reason="Prompt reads a command name"
            )

        if self.allows_edit(command):
            return InjectionDecision(
                action=InjectionAction.EDIT,
                command=command,
                reason="Edit allowed"
            )

        return InjectionDecision(
            action=InjectionAction.CONFIRM,
            command=command,
            reason="Edit skipped"
        )

    def allows_edit(self, command: Optional[str]) -> bool:
        if self.allow_edit_default:
            return command not in self.skip_edit_commands
        return command in self.allow_edit_commands


# Setup hooks run on the prompt right after injection

SetupHook = Callable[[Prompt, str], Optional[str]]


def shell_quote(prompt: Prompt, target: str) -> str:
    """Quote the target as one shell word, leaving room for the command."""
    return f" {shlex.quote(target)}"


def eval_wrap(prompt: Prompt, target: str) -> str:
    """Turn the target into a call expression."""
    return f"{target}()"


SETUP_HOOKS: dict[str, SetupHook] = {
    "shell_quote": shell_quote,
    "eval_wrap": eval_wrap,
}

DEFAULT_SETUP_OVERRIDES: dict[str, str] = {
    "shell-command": "shell_quote",
    "async-shell-command": "shell_quote",
    "eval-expression": "eval_wrap",
}


@dataclass(frozen=True)
class SetupOverrides:
    """Per-command hooks rewriting the prompt content after injection."""

    overrides: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_SETUP_OVERRIDES))

    def hook_for(self, command: Optional[str]) -> Optional[SetupHook]:
        if command is None:
            return None
        name = self.overrides.get(command)
        if name is None:
            return None
        try:
            return SETUP_HOOKS[name]
        except KeyError:
            raise ValueError(f"Unknown setup hook '{name}' for command '{command}'") from None
