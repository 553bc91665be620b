from pathlib import Path

import yaml

from .actions import GENERAL_BINDINGS, TYPE_BINDINGS, general_keymap, resolve_command
from .config import Settings
from .keymap import ActionRegistry
from .models import DispatchConfig
from .routing import (
    DEFAULT_ALLOW_EDIT_COMMANDS,
    DEFAULT_SETUP_OVERRIDES,
    SETUP_HOOKS,
    InjectionPolicy,
    SetupOverrides,
)
from .session import GENERAL


def load_dispatch_config(config_file: Path) -> DispatchConfig:
    """
    Load the YAML dispatch file into a DispatchConfig.

    Args:
        config_file: path to the YAML file

    Returns:
        DispatchConfig: parsed configuration (empty when the file is missing or empty)

    Invalid shapes raise pydantic's ValidationError rather than being skipped,
    since a half-applied keymap is worse than a loud failure.
    """
    if not config_file.exists():
        return DispatchConfig()
    data = yaml.safe_load(config_file.read_text(encoding="utf-8"))
    if not data:
        return DispatchConfig()
    if not isinstance(data, dict):
        raise ValueError(f"{config_file}: expected a mapping at the top level")
    return DispatchConfig(**data)


def build_registry(config: DispatchConfig) -> ActionRegistry:
    """
    Build the action registry from the built-in keymaps plus the configured ones.

    Parents are resolved by name, so keymaps are defined in dependency order:
    a keymap is defined once its parent exists. An unknown parent or a parent
    cycle raises ValueError.
    """
    general_bindings = dict(GENERAL_BINDINGS)
    specs: dict[str, tuple[str, dict[str, str]]] = {
        session_type: (GENERAL, dict(bindings)) for session_type, bindings in TYPE_BINDINGS.items()
    }

    for spec in config.keymaps:
        if spec.type == GENERAL:
            general_bindings = dict(spec.bindings) if spec.replace else {**general_bindings, **spec.bindings}
            continue
        _, current = specs.get(spec.type, (GENERAL, {}))
        bindings = dict(spec.bindings) if spec.replace else {**current, **spec.bindings}
        specs[spec.type] = (spec.parent, bindings)

    registry = ActionRegistry(general_keymap(general_bindings))
    remaining = dict(specs)
    while remaining:
        ready = [t for t, (parent, _) in remaining.items() if parent in registry]
        if not ready:
            unknown = sorted({parent for parent, _ in remaining.values() if parent not in remaining})
            if unknown:
                raise ValueError(f"Unknown parent keymap(s): {', '.join(unknown)}")
            raise ValueError(f"Keymap parent cycle among: {', '.join(sorted(remaining))}")
        for session_type in ready:
            parent, bindings = remaining.pop(session_type)
            registry.define(
                session_type,
                [(key, resolve_command(name)) for key, name in bindings.items()],
                parent=parent,
            )
    return registry


def build_policy(config: DispatchConfig, settings: Settings) -> InjectionPolicy:
    allow = DEFAULT_ALLOW_EDIT_COMMANDS if config.allow_edit_commands is None else config.allow_edit_commands
    skip = () if config.skip_edit_commands is None else config.skip_edit_commands
    return InjectionPolicy(
        allow_edit_default=settings.allow_edit_default,
        allow_edit_commands=frozenset(allow),
        skip_edit_commands=frozenset(skip),
    )


def build_setup_overrides(config: DispatchConfig) -> SetupOverrides:
    overrides = {**DEFAULT_SETUP_OVERRIDES, **config.setup_overrides}
    unknown = sorted(name for name in overrides.values() if name not in SETUP_HOOKS)
    if unknown:
        raise ValueError(f"Unknown setup hook(s): {', '.join(unknown)}")
    return SetupOverrides(overrides)
