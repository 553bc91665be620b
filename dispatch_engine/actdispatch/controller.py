from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional

from .actions import undefined_command
from .classifier import ClassifierChain
from .config import Settings, settings as default_settings
from .host import Host, Prompt
from .keymap import ActionRegistry, Command, KeymapNode
from .logging_utils import log_dispatch
from .resolver import NoTargetError, TargetResolverChain
from .routing import InjectionAction, InjectionPolicy, SetupOverrides
from .session import Context, Session, SessionType, TargetSlot, ViewCache

if TYPE_CHECKING:
    from .occur import BrowserManager

logger = logging.getLogger(__name__)


class DispatchState(str, Enum):
    IDLE = "idle"
    ARMED = "armed"
    AWAITING_CHOICE = "awaiting_choice"
    EXECUTING = "executing"
    EXITING_THEN_EXECUTING = "exiting_then_executing"


UNIVERSAL_ARGUMENT_KEYS = frozenset({"C-u"})
NEGATIVE_ARGUMENT_KEYS = frozenset({"M--"})
DIGIT_ARGUMENT_KEYS = {f"M-{d}": str(d) for d in range(10)}


class TransientScope:
    """One-shot key scope installed while a session waits for its action key.

    Prefix-argument keys and help keys leave the scope active. Any other
    key selects an action and deactivates the scope in the same step.
    """

    def __init__(self, keymap: KeymapNode, *,
                 on_choice: Callable[[str, Optional[Command], Optional[int]], Any],
                 on_help: Optional[Callable[[], None]] = None,
                 help_keys: Iterable[str] = ("C-h",)):
        self.keymap = keymap
        self.active = True
        self._on_choice = on_choice
        self._on_help = on_help
        self._help_keys = frozenset(help_keys)
        self._universal: Optional[int] = None
        self._sign = 1
        self._digits = ""

    @property
    def prefix_arg(self) -> Optional[int]:
        if self._digits:
            return self._sign * int(self._digits)
        if self._universal is not None:
            return self._sign * self._universal
        if self._sign < 0:
            return -1
        return None

    def is_keep_alive(self, key: str) -> bool:
        return (
            key in UNIVERSAL_ARGUMENT_KEYS
            or key in NEGATIVE_ARGUMENT_KEYS
            or key in DIGIT_ARGUMENT_KEYS
            or key in self._help_keys
        )

    def press(self, key: str) -> bool:
        """Feed one key; returns True while the scope stays active."""
        if not self.active:
            raise RuntimeError("Transient scope is no longer active")

        if key in UNIVERSAL_ARGUMENT_KEYS:
            self._universal = (self._universal or 1) * 4
            return True
        if key in NEGATIVE_ARGUMENT_KEYS:
            self._sign = -self._sign
            return True
        if key in DIGIT_ARGUMENT_KEYS:
            self._digits += DIGIT_ARGUMENT_KEYS[key]
            return True
        if key in self._help_keys:
            if self._on_help is not None:
                self._on_help()
            return True

        self.active = False
        self._on_choice(key, self.keymap.lookup(key), self.prefix_arg)
        return False


@dataclass(frozen=True)
class Continuation:
    """Snapshot of a chosen action, replayed once every prompt has unwound."""
    command: Command
    prefix_arg: Optional[int]
    originating_command: Optional[str]
    target_location: Optional[str]
    session_type: SessionType
    target: Optional[str] = None
    context: Context = field(default_factory=Context)


@dataclass(eq=False)
class DispatchScope:
    session: Session
    keymap: KeymapNode
    exit_after: bool = False
    state: DispatchState = DispatchState.ARMED
    transient: Optional[TransientScope] = None
    indicator: Any = None
    action: Optional[str] = None
    cleaned_up: bool = False


@dataclass
class ActionContext:
    """What a command sees while it runs."""
    controller: "SessionController"
    session: Session
    prefix_arg: Optional[int] = None
    trigger: Optional[str] = None
    deferred: bool = False

    @property
    def host(self) -> Host:
        return self.controller.host

    def target(self) -> Optional[str]:
        return self.session.target.take()

    def run_command(self, name: str, arg: Optional[int] = None) -> Any:
        return self.host.commands.run_command(name, arg)

    def message(self, text: str) -> None:
        self.host.views.message(text)


class SessionController:
    """Drives sessions from dispatch start to cleanup.

    Idle -> Armed -> AwaitingChoice -> Executing | ExitingThenExecuting -> Idle

    Sessions nest: a command that dispatches again while it runs gets its
    own scope on top of the stack, fully cleaned up before the outer one
    resumes. Re-arming over a scope still waiting for its key replaces it.
    """

    def __init__(self,
                 host: Host,
                 registry: ActionRegistry,
                 classifiers: ClassifierChain,
                 resolvers: TargetResolverChain,
                 *,
                 policy: Optional[InjectionPolicy] = None,
                 setup_overrides: Optional[SetupOverrides] = None,
                 view_cache: Optional[ViewCache] = None,
                 settings: Optional[Settings] = None):
        self.host = host
        self.registry = registry
        self.classifiers = classifiers
        self.resolvers = resolvers
        self.settings = settings or default_settings
        self.policy = policy or InjectionPolicy(allow_edit_default=self.settings.allow_edit_default)
        self.setup_overrides = setup_overrides or SetupOverrides()
        self.view_cache = view_cache if view_cache is not None else ViewCache()
        self.browser: Optional["BrowserManager"] = None
        self._scopes: list[DispatchScope] = []
        self._hooks_installed = False
        self._continuation: Optional[Continuation] = None

    @property
    def state(self) -> DispatchState:
        if self._scopes:
            return self._scopes[-1].state
        if self._continuation is not None:
            return DispatchState.EXITING_THEN_EXECUTING
        return DispatchState.IDLE

    @property
    def session(self) -> Optional[Session]:
        scope = self._top()
        return scope.session if scope else None

    @property
    def depth(self) -> int:
        return len(self._scopes)

    def act(self, context: Context, *, exit_after: Optional[bool] = None) -> Optional[Session]:
        """Arm a session for `context` and wait for the action key."""
        if exit_after is None:
            exit_after = self.settings.quit_after_action

        top = self._top()
        if top is not None and top.state in (DispatchState.ARMED, DispatchState.AWAITING_CHOICE):
            logger.debug(f"♻️ Replacing armed session {top.session.id}")
            self.cancel()

        session_type = self.classifiers.classify(context)
        try:
            target = self.resolvers.resolve(context)
            if target is None:
                raise NoTargetError()
        except NoTargetError as e:
            logger.info(f"❌ {e} (type: {session_type})")
            self.host.views.message(str(e))
            return None

        session = Session(
            type=session_type,
            target=TargetSlot(target),
            target_location=self.view_cache.location_for(context.view_id) or context.view_id,
            originating_command=context.command,
            context=context,
        )
        keymap = self.registry.lookup_keymap(session_type)
        scope = DispatchScope(session=session, keymap=keymap, exit_after=exit_after)
        self._push(scope)

        scope.indicator = self.host.views.show_indicator(
            self._indicator_text(session), context.view_id, style=self.settings.indicator
        )
        scope.transient = TransientScope(
            keymap,
            on_choice=partial(self._choose, scope),
            on_help=partial(self._show_help, scope),
            help_keys=self.settings.help_keys,
        )
        scope.state = DispatchState.AWAITING_CHOICE
        self.host.keys.push_scope(scope.transient)
        logger.debug(f"🔔 Session {session.id} armed: {session_type} '{target}' via {keymap.name}")
        return session

    def press(self, key: str) -> bool:
        """Feed a key to the session waiting for its action."""
        scope = self._top()
        if scope is None or scope.transient is None or not scope.transient.active:
            raise RuntimeError("No session is waiting for an action key")
        return scope.transient.press(key)

    def cancel(self) -> None:
        """Drop the session waiting for its key and return to Idle."""
        scope = self._top()
        if scope is None or scope.state not in (DispatchState.ARMED, DispatchState.AWAITING_CHOICE):
            return
        logger.debug(f"🚫 Session {scope.session.id} cancelled")
        self._finish(scope)

    def run_action(self,
                   session_type: str,
                   target: Optional[str],
                   command: Command,
                   *,
                   prefix_arg: Optional[int] = None,
                   originating_command: Optional[str] = None,
                   target_location: Optional[str] = None,
                   context: Optional[Context] = None,
                   deferred: bool = False) -> Any:
        """Run `command` on a rehydrated session without asking for a key."""
        session = Session(
            type=SessionType(session_type),
            target=TargetSlot(target),
            target_location=target_location,
            originating_command=originating_command,
            context=context or Context(),
        )
        scope = DispatchScope(session=session, keymap=self.registry.lookup_keymap(session_type))
        self._push(scope)
        return self._execute(scope, command, prefix_arg, deferred=deferred)

    def unwind_then(self, continuation: Continuation) -> None:
        """Tear down every prompt and scope, then replay `continuation`.

        Output stays suppressed while prompts unwind. The replay happens on
        the next scheduler tick after the unwind completed.
        """
        for scope in reversed(list(self._scopes)):
            self._finish(scope)
        self._continuation = continuation
        self.host.views.set_output_suppressed(True)
        logger.debug(f"⏏️ Unwinding prompts before '{continuation.command.name}'")
        self.host.prompts.unwind(partial(self._unwound, continuation))

    # State transitions

    def _choose(self, scope: DispatchScope, key: str, command: Optional[Command],
                prefix_arg: Optional[int]) -> Any:
        self._deactivate(scope)
        if command is None:
            command = undefined_command(key, scope.keymap)

        if scope.exit_after and command.unwinds:
            scope.state = DispatchState.EXITING_THEN_EXECUTING
            scope.action = command.name
            session = scope.session
            self.unwind_then(Continuation(
                command=command,
                prefix_arg=prefix_arg,
                originating_command=session.originating_command,
                target_location=session.target_location,
                session_type=session.type,
                target=session.target.take(),
                context=session.context,
            ))
            return None

        return self._execute(scope, command, prefix_arg, trigger=key)

    def _execute(self, scope: DispatchScope, command: Command, prefix_arg: Optional[int],
                 trigger: Optional[str] = None, deferred: bool = False) -> Any:
        scope.state = DispatchState.EXECUTING
        scope.action = command.name
        session = scope.session
        target = session.target.peek()
        ctx = ActionContext(self, session, prefix_arg=prefix_arg, trigger=trigger, deferred=deferred)

        start_time = time.time()
        try:
            result = command(ctx)
        except Exception as e:
            log_dispatch(
                logger, session.id, session.type, target, command.name, False,
                (time.time() - start_time) * 1000, prefix_arg, session.originating_command,
                deferred, error=str(e)
            )
            raise
        finally:
            self._finish(scope)

        log_dispatch(
            logger, session.id, session.type, target, command.name, True,
            (time.time() - start_time) * 1000, prefix_arg, session.originating_command, deferred
        )
        return result

    def _unwound(self, continuation: Continuation) -> None:
        self.host.views.set_output_suppressed(False)
        self.host.scheduler.call_soon(partial(self._replay, continuation))

    def _replay(self, continuation: Continuation) -> Any:
        if self._continuation is continuation:
            self._continuation = None
        # A session armed during the unwind never got its key; the chosen action wins
        self.cancel()
        if continuation.target_location:
            self.host.views.select_view(continuation.target_location)
        return self.run_action(
            continuation.session_type,
            continuation.target,
            continuation.command,
            prefix_arg=continuation.prefix_arg,
            originating_command=continuation.originating_command,
            target_location=continuation.target_location,
            context=continuation.context,
            deferred=True,
        )

    # Prompt hooks

    def _inject(self, prompt: Prompt) -> None:
        scope = self._top()
        if scope is None or scope.state != DispatchState.EXECUTING or not scope.session.target.pending:
            return

        decision = self.policy.decide(prompt, scope.action)
        if decision.action == InjectionAction.SKIP:
            logger.debug(f"⏭️ Not injecting into '{prompt.text}': {decision.reason}")
            return

        target = scope.session.target.take()
        self.host.prompts.replace_content(prompt, target)

        hook = self.setup_overrides.hook_for(prompt.command)
        if hook is not None:
            content = hook(prompt, target)
            if content is not None:
                self.host.prompts.replace_content(prompt, content)

        if decision.action == InjectionAction.CONFIRM:
            self.host.prompts.confirm(prompt)
        logger.debug(f"💉 Injected '{target}' into '{prompt.text}' ({decision.action.value})")

    def _after_input(self) -> None:
        scope = self._top()
        if scope is not None and scope.state == DispatchState.EXECUTING and not scope.session.target.pending:
            self._cleanup(scope)

    # Scope bookkeeping

    def _top(self) -> Optional[DispatchScope]:
        return self._scopes[-1] if self._scopes else None

    def _push(self, scope: DispatchScope) -> None:
        self._scopes.append(scope)
        if not self._hooks_installed:
            self.host.prompts.add_setup_hook(self._inject, first=True)
            self.host.prompts.add_post_input_hook(self._after_input)
            self._hooks_installed = True

    def _deactivate(self, scope: DispatchScope) -> None:
        transient = scope.transient
        if transient is not None:
            transient.active = False
            self.host.keys.pop_scope(transient)
            scope.transient = None

    def _cleanup(self, scope: DispatchScope) -> None:
        if scope.cleaned_up:
            return
        scope.cleaned_up = True
        self._deactivate(scope)
        if scope.indicator is not None:
            self.host.views.remove_indicator(scope.indicator)
            scope.indicator = None

    def _finish(self, scope: DispatchScope) -> None:
        scope.session.target.take()
        self._cleanup(scope)
        scope.state = DispatchState.IDLE
        if scope in self._scopes:
            self._scopes.remove(scope)
        if not self._scopes and self._hooks_installed:
            self.host.prompts.remove_setup_hook(self._inject)
            self.host.prompts.remove_post_input_hook(self._after_input)
            self._hooks_installed = False

    def _indicator_text(self, session: Session) -> str:
        target = session.target.peek() or ""
        if len(target) > 40:
            target = target[:37] + "..."
        return f"Act on {session.type} '{target}'"

    def _show_help(self, scope: DispatchScope) -> None:
        lines = [f"Actions for {scope.session.type}:"]
        for trigger, name, owner in scope.keymap.describe():
            suffix = f"  ({owner})" if owner != scope.keymap.name else ""
            lines.append(f"  {trigger:<6} {name}{suffix}")
        self.host.views.message("\n".join(lines))
