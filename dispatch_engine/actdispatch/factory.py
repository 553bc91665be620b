from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .classifier import (
    ClassifierChain,
    buffer_prompt_type,
    category_type,
    package_prompt_type,
    symbol_prompt_type,
)
from .commands import build_policy, build_registry, build_setup_overrides, load_dispatch_config
from .config import Settings, settings as default_settings
from .controller import SessionController
from .host import Host
from .keymap import ActionRegistry
from .logging_utils import setup_dispatch_logger
from .models import DispatchConfig
from .occur import DEFAULT_INITIAL_VIEWS, BrowserManager, BrowserView, ViewMode
from .resolver import (
    CandidateCollectorChain,
    TargetResolverChain,
    active_region,
    file_at_point,
    prompt_candidates,
    symbol_at_point,
    top_completion,
    url_at_point,
)
from .session import Context, Session, ViewCache


@dataclass
class DispatchEngine:
    """Everything one host needs, wired together."""
    host: Host
    settings: Settings
    registry: ActionRegistry
    classifiers: ClassifierChain
    resolvers: TargetResolverChain
    collectors: CandidateCollectorChain
    view_cache: ViewCache
    controller: SessionController
    browser: BrowserManager

    def act(self, context: Context, *, exit_after: Optional[bool] = None) -> Optional[Session]:
        return self.controller.act(context, exit_after=exit_after)

    def press(self, key: str) -> bool:
        return self.controller.press(key)

    def cancel(self) -> None:
        self.controller.cancel()

    def occur(self, context: Context) -> Optional[BrowserView]:
        return self.browser.occur(context)

    def export(self, context: Context) -> Any:
        return self.browser.export(context)


def create_engine(host: Host,
                  settings: Optional[Settings] = None,
                  config: Optional[DispatchConfig] = None) -> DispatchEngine:
    """Factory function building an engine from settings and the YAML dispatch file."""

    settings = settings or default_settings
    setup_dispatch_logger("actdispatch", settings.log_level)

    if config is None:
        config = load_dispatch_config(Path(settings.config_file)) if settings.config_file else DispatchConfig()

    view_cache = ViewCache()

    # Cheap lookups first; the cache answers for views the engine created itself
    classifiers = ClassifierChain([
        view_cache.classify,
        category_type,
        symbol_prompt_type,
        package_prompt_type,
        buffer_prompt_type,
    ])
    resolvers = TargetResolverChain([
        top_completion,
        active_region,
        url_at_point,
        file_at_point,
        symbol_at_point,
    ])
    collectors = CandidateCollectorChain([prompt_candidates])

    registry = build_registry(config)
    controller = SessionController(
        host,
        registry,
        classifiers,
        resolvers,
        policy=build_policy(config, settings),
        setup_overrides=build_setup_overrides(config),
        view_cache=view_cache,
        settings=settings,
    )

    initial_views = dict(DEFAULT_INITIAL_VIEWS)
    initial_views.update({t: ViewMode(mode) for t, mode in config.initial_views.items()})
    browser = BrowserManager(controller, collectors, initial_views=initial_views)

    # Browser rows are the most specific target and candidate source
    resolvers.register(browser.target_at_point, first=True)
    collectors.register(browser.collect, first=True)

    return DispatchEngine(
        host=host,
        settings=settings,
        registry=registry,
        classifiers=classifiers,
        resolvers=resolvers,
        collectors=collectors,
        view_cache=view_cache,
        controller=controller,
        browser=browser,
    )
