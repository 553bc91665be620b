from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from .keymap import ActionRegistry, Command, KeymapNode
from .routing import DEFAULT_ACTION
from .session import BUFFER, FILE, GENERAL, PACKAGE, SYMBOL, URL

if TYPE_CHECKING:
    from .controller import ActionContext


def _default_action(ctx: "ActionContext"):
    """Re-run the command that opened the prompt; the target is injected into it."""
    command = ctx.session.originating_command
    if not command:
        ctx.message("No originating command to run")
        return None
    return ctx.run_command(command, ctx.prefix_arg)


def _insert(ctx: "ActionContext"):
    target = ctx.target()
    if target is None:
        return None
    location = ctx.session.target_location or ctx.host.views.current_view()
    # A numeric prefix inserts the target that many times
    count = ctx.prefix_arg if ctx.prefix_arg and ctx.prefix_arg > 0 else 1
    ctx.host.views.insert(location, target * count)
    return target


def _save(ctx: "ActionContext"):
    target = ctx.target()
    if target is None:
        return None
    ctx.host.views.push_kill(target)
    ctx.message(f"Saved '{target}'")
    return target


def _cancel(ctx: "ActionContext"):
    ctx.target()
    ctx.message("Quit")


def _occur(ctx: "ActionContext"):
    browser = ctx.controller.browser
    if browser is None:
        ctx.message("Browsing is not available")
        return None
    ctx.target()
    return browser.occur(ctx.session.context, session_type=ctx.session.type,
                         target_location=ctx.session.target_location)


def _export(ctx: "ActionContext"):
    browser = ctx.controller.browser
    if browser is None:
        ctx.message("Exporting is not available")
        return None
    ctx.target()
    return browser.export(ctx.session.context, session_type=ctx.session.type,
                          target_location=ctx.session.target_location)


DEFAULT = Command(DEFAULT_ACTION, _default_action, description="Run the originating command")
INSERT = Command("insert", _insert, description="Insert the target at its location")
SAVE = Command("save", _save, description="Save the target to the kill ring")
OCCUR = Command("occur", _occur, unwinds=False, description="Browse all candidates")
EXPORT = Command("export", _export, unwinds=False, description="Export all candidates")
CANCEL = Command("cancel", _cancel, unwinds=False, description="Quit without acting")

BUILTIN_COMMANDS: dict[str, Command] = {
    command.name: command for command in (DEFAULT, INSERT, SAVE, OCCUR, EXPORT, CANCEL)
}


def undefined_command(trigger: str, keymap: Optional[KeymapNode] = None) -> Command:
    """Stand-in for a trigger bound nowhere in the keymap chain."""
    def report(ctx: "ActionContext"):
        ctx.target()
        where = f" in {keymap.name}" if keymap is not None else ""
        ctx.message(f"{trigger} is undefined{where}")
    return Command("undefined", report, unwinds=False)


def host_command(name: str) -> Command:
    """Command running a host command by name; its prompt receives the target."""
    def run(ctx: "ActionContext"):
        return ctx.run_command(name, ctx.prefix_arg)
    return Command(name, run)


def resolve_command(name: str) -> Command:
    return BUILTIN_COMMANDS.get(name) or host_command(name)


GENERAL_BINDINGS = {
    "RET": DEFAULT_ACTION,
    "i": "insert",
    "w": "save",
    "O": "occur",
    "E": "export",
    "C-g": "cancel",
}

# Host commands per type; every map falls back to the general map
TYPE_BINDINGS: dict[str, dict[str, str]] = {
    FILE: {
        "f": "find-file",
        "o": "find-file-other-window",
        "d": "delete-file",
        "r": "rename-file",
        "c": "copy-file",
        "!": "shell-command",
        "&": "async-shell-command",
    },
    BUFFER: {
        "b": "switch-to-buffer",
        "o": "switch-to-buffer-other-window",
        "k": "kill-buffer",
    },
    SYMBOL: {
        "h": "describe-symbol",
        ".": "find-definition",
        "e": "eval-expression",
    },
    PACKAGE: {
        "h": "describe-package",
        "i": "package-install",
        "d": "package-delete",
    },
    URL: {
        "b": "browse-url",
        "d": "download-url",
    },
}


def general_keymap(bindings: Optional[dict[str, str]] = None) -> KeymapNode:
    merged = dict(GENERAL_BINDINGS)
    merged.update(bindings or {})
    return KeymapNode(f"{GENERAL}-map", [(key, resolve_command(name)) for key, name in merged.items()])


def default_registry() -> ActionRegistry:
    registry = ActionRegistry(general_keymap())
    for session_type, bindings in TYPE_BINDINGS.items():
        registry.define(session_type, [(key, resolve_command(name)) for key, name in bindings.items()])
    return registry
