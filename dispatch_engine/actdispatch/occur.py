from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Sequence

from .actions import DEFAULT
from .annotators import DEFAULT_ANNOTATORS, Annotator
from .controller import Continuation, SessionController
from .keymap import Command
from .presentation.html_renderer import HtmlRenderer
from .presentation.presenters import create_presenter
from .resolver import CandidateCollectorChain
from .session import BUFFER, FILE, PACKAGE, SYMBOL, WILDCARD, Context, SessionType, by_type

logger = logging.getLogger(__name__)


class ViewMode(str, Enum):
    LIST = "list"
    GRID = "grid"


@dataclass
class BrowserView:
    """Secondary view over a full candidate set."""
    session_type: SessionType
    candidates: list[str]
    mode: ViewMode = ViewMode.LIST
    originating_command: Optional[str] = None
    target_location: Optional[str] = None
    context: Context = field(default_factory=Context)
    view_id: Optional[str] = None
    point: int = 0
    annotations: dict[str, Optional[str]] = field(default_factory=dict)
    direct_actions: dict[str, Callable[[], Any]] = field(default_factory=dict)

    def candidate_at_point(self) -> Optional[str]:
        if 0 <= self.point < len(self.candidates):
            return self.candidates[self.point]
        return None

    @property
    def direct_action_mode(self) -> bool:
        return bool(self.direct_actions)


# Layouts

GRID_SPACING = 2


def grid_dimensions(candidates: Sequence[str], viewport_width: int) -> tuple[int, int]:
    """(column_width, columns) for tiling candidates across the viewport.

    The column width is the padded display width of the widest candidate,
    capped at half the viewport.
    """
    if not candidates:
        return 0, 0
    widest = max(len(candidate) for candidate in candidates) + GRID_SPACING
    column_width = max(1, min(widest, viewport_width // 2))
    columns = max(1, viewport_width // column_width)
    return column_width, columns


def grid_layout(candidates: Sequence[str], viewport_width: int) -> list[str]:
    """Row-major grid; a candidate too wide for a column gets a row of its own."""
    if not candidates:
        return []
    column_width, columns = grid_dimensions(candidates, viewport_width)
    rows = []
    cells: list[str] = []
    for candidate in candidates:
        if len(candidate) + GRID_SPACING > column_width:
            if cells:
                rows.append("".join(cells).rstrip())
                cells = []
            rows.append(candidate)
            continue
        cells.append(candidate.ljust(column_width))
        if len(cells) == columns:
            rows.append("".join(cells).rstrip())
            cells = []
    if cells:
        rows.append("".join(cells).rstrip())
    return rows


def list_layout(candidates: Sequence[str], annotations: Optional[Mapping[str, Optional[str]]] = None) -> list[str]:
    if not candidates:
        return []
    annotations = annotations or {}
    width = max(len(candidate) for candidate in candidates)
    rows = []
    for candidate in candidates:
        note = annotations.get(candidate)
        rows.append(f"{candidate.ljust(width)}  {note}" if note else candidate)
    return rows


# Exporters: (manager, type, candidates, target_location, context) -> result

Exporter = Callable[["BrowserManager", str, list[str], Optional[str], Context], Any]


def occur_exporter(manager: "BrowserManager", session_type: str, candidates: list[str],
                   target_location: Optional[str], context: Context) -> "BrowserView":
    return manager.open_view(session_type, candidates, context=context, target_location=target_location)


def markdown_exporter(manager: "BrowserManager", session_type: str, candidates: list[str],
                      target_location: Optional[str], context: Context) -> str:
    """Replace the browse step with a type-specific Markdown view."""
    presenter = create_presenter(session_type)
    text = presenter.to_markdown(candidates, source=context.prompt_text)
    views = manager.host.views
    view_id = views.create_view(f"*Export: {session_type}*", text.splitlines(), kind=f"{session_type}-export")
    manager.controller.view_cache.remember(view_id, session_type, target_location)
    logger.info(f"📤 Exported {len(candidates)} {session_type} candidates to {view_id}")
    return view_id


DEFAULT_EXPORTERS: dict[str, Exporter] = {
    FILE: markdown_exporter,
    SYMBOL: markdown_exporter,
    PACKAGE: markdown_exporter,
    WILDCARD: occur_exporter,
}

DEFAULT_INITIAL_VIEWS: dict[str, ViewMode] = {
    FILE: ViewMode.GRID,
    BUFFER: ViewMode.GRID,
    WILDCARD: ViewMode.LIST,
}


class BrowserManager:
    """Opens and maintains Browser views over collected candidates."""

    def __init__(self,
                 controller: SessionController,
                 collectors: CandidateCollectorChain,
                 *,
                 annotators: Optional[Mapping[str, Annotator]] = None,
                 exporters: Optional[Mapping[str, Exporter]] = None,
                 initial_views: Optional[Mapping[str, Any]] = None):
        self.controller = controller
        self.collectors = collectors
        self.annotators = dict(DEFAULT_ANNOTATORS if annotators is None else annotators)
        self.exporters = dict(DEFAULT_EXPORTERS if exporters is None else exporters)
        self.initial_views = dict(DEFAULT_INITIAL_VIEWS if initial_views is None else initial_views)
        self._views: dict[str, BrowserView] = {}
        controller.browser = self

    @property
    def host(self):
        return self.controller.host

    def get(self, view_id: str) -> BrowserView:
        try:
            return self._views[view_id]
        except KeyError:
            raise KeyError(f"No Browser view '{view_id}'") from None

    def views(self) -> list[BrowserView]:
        return list(self._views.values())

    def occur(self, context: Context, *, session_type: Optional[str] = None,
              target_location: Optional[str] = None) -> Optional[BrowserView]:
        """Collect every candidate of `context` into a new Browser view."""
        candidates = self.collectors.collect(context)
        if not candidates:
            self.host.views.message("No candidates to browse")
            return None
        if session_type is None:
            session_type = self.controller.classifiers.classify(context)
        return self.open_view(session_type, candidates, context=context, target_location=target_location)

    def open_view(self, session_type: str, candidates: Sequence[str], *,
                  context: Optional[Context] = None, target_location: Optional[str] = None) -> BrowserView:
        context = context or Context()
        mode = ViewMode(by_type(self.initial_views, session_type, ViewMode.LIST))
        view = BrowserView(
            session_type=SessionType(session_type),
            candidates=list(candidates),
            mode=mode,
            originating_command=context.command,
            target_location=target_location or context.view_id,
            context=context,
        )
        view.view_id = self.host.views.create_view(f"*Occur: {session_type}*", self.render(view), kind="occur")
        self.controller.view_cache.remember(view.view_id, session_type, view.target_location)
        self._views[view.view_id] = view
        logger.info(f"🗂️ Browser {view.view_id}: {len(view.candidates)} {session_type} candidates ({mode.value})")
        return view

    def render(self, view: BrowserView) -> list[str]:
        """Lines for the view's current layout, recomputed from its candidates."""
        if view.mode == ViewMode.GRID:
            view.annotations = {}
            return grid_layout(view.candidates, self.host.views.viewport_width(view.view_id))
        annotator = by_type(self.annotators, view.session_type)
        view.annotations = {c: annotator(c) for c in view.candidates} if annotator else {}
        return list_layout(view.candidates, view.annotations)

    def redisplay(self, view: BrowserView) -> None:
        self.host.views.update_view(view.view_id, self.render(view))

    def toggle_view(self, view_id: str) -> ViewMode:
        view = self.get(view_id)
        view.mode = ViewMode.GRID if view.mode == ViewMode.LIST else ViewMode.LIST
        self.redisplay(view)
        return view.mode

    def refresh(self, view_id: str, candidates: Sequence[str]) -> BrowserView:
        """Replace the candidates of a live view and redraw it."""
        view = self.get(view_id)
        current = view.candidate_at_point()
        view.candidates = list(candidates)
        view.point = view.candidates.index(current) if current in view.candidates else 0
        self.redisplay(view)
        return view

    def move_point(self, view_id: str, index: int) -> Optional[str]:
        view = self.get(view_id)
        if view.candidates:
            view.point = max(0, min(index, len(view.candidates) - 1))
        return view.candidate_at_point()

    def close(self, view_id: str) -> None:
        view = self._views.pop(view_id, None)
        if view is None:
            return
        if view.direct_actions:
            self.host.views.set_view_bindings(view_id, None)
        self.controller.view_cache.forget(view_id)

    def toggle_direct_actions(self, view_id: str) -> bool:
        """Bind the type's actions straight into the view, or unbind them."""
        view = self.get(view_id)
        if view.direct_actions:
            view.direct_actions = {}
            self.host.views.set_view_bindings(view_id, None)
            return False

        keymap = self.controller.registry.lookup_keymap(view.session_type)
        view.direct_actions = {
            trigger: self._direct_command(view, command)
            for trigger, command in keymap.flatten().items()
        }
        self.host.views.set_view_bindings(view_id, dict(view.direct_actions))
        return True

    def _direct_command(self, view: BrowserView, command: Command) -> Callable[[], Any]:
        def run():
            # Point the context at the Browser so collection sees its live candidates
            context = replace(view.context, view_id=view.view_id)
            return self.controller.run_action(
                view.session_type,
                view.candidate_at_point(),
                command,
                originating_command=view.originating_command,
                target_location=view.target_location,
                context=context,
            )
        run.__name__ = f"direct-{command.name}"
        return run

    def select(self, view_id: str, index: Optional[int] = None) -> Any:
        """Re-run the command that produced the candidates on the row at point."""
        view = self.get(view_id)
        if index is not None:
            self.move_point(view_id, index)
        candidate = view.candidate_at_point()
        if candidate is None:
            self.host.views.message("No candidate at point")
            return None
        return self.controller.run_action(
            view.session_type,
            candidate,
            DEFAULT,
            originating_command=view.originating_command,
            target_location=view.target_location,
            context=view.context,
        )

    def export(self, context: Context, *, session_type: Optional[str] = None,
               target_location: Optional[str] = None) -> Any:
        """Hand the candidates to the exporter registered for their type.

        The Browser itself runs right away. Any other exporter replaces the
        foreground view, so it runs after the open prompts have unwound.
        """
        if session_type is None:
            session_type = self.controller.classifiers.classify(context)
        exporter = by_type(self.exporters, session_type, occur_exporter)

        view = self._views.get(context.view_id) if context.view_id else None
        candidates = list(view.candidates) if view else self.collectors.collect(context)
        if not candidates:
            self.host.views.message("No candidates to export")
            return None
        if target_location is None:
            target_location = view.target_location if view else context.view_id

        if exporter is occur_exporter:
            return exporter(self, session_type, candidates, target_location, context)

        command = Command(
            f"export-{session_type}",
            lambda ctx: exporter(self, session_type, candidates, target_location, context),
        )
        self.controller.unwind_then(Continuation(
            command=command,
            prefix_arg=None,
            originating_command=context.command,
            target_location=target_location,
            session_type=SessionType(session_type),
        ))
        return None

    def export_html(self, view_id: str, theme: Optional[str] = None) -> str:
        view = self.get(view_id)
        presenter = create_presenter(view.session_type)
        annotator = by_type(self.annotators, view.session_type)
        annotations = {c: annotator(c) for c in view.candidates} if annotator else {}
        text = presenter.to_markdown(view.candidates, source=view.context.prompt_text, annotations=annotations)
        return HtmlRenderer(theme=theme).render(
            text,
            title=f"{view.session_type} candidates",
            metadata={"type": view.session_type, "count": len(view.candidates)},
        )

    # Chain members

    def target_at_point(self, context: Context) -> Optional[str]:
        view = self._views.get(context.view_id) if context.view_id else None
        if view is None:
            return None
        if context.at_point and context.at_point in view.candidates:
            return context.at_point
        return view.candidate_at_point()

    def collect(self, context: Context) -> list[str]:
        view = self._views.get(context.view_id) if context.view_id else None
        return list(view.candidates) if view else []
