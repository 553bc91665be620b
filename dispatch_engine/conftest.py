"""Shared fakes standing in for the host environment."""

import pytest

from actdispatch.config import Settings
from actdispatch.factory import create_engine
from actdispatch.host import Host, Prompt
from actdispatch.models import DispatchConfig
from actdispatch.session import Context


class FakePrompts:
    def __init__(self):
        self.setup_hooks = []
        self.post_input_hooks = []
        self.stack = []
        self.history = []
        self.pending_unwinds = []

    def add_setup_hook(self, hook, *, first=False):
        if first:
            self.setup_hooks.insert(0, hook)
        else:
            self.setup_hooks.append(hook)

    def remove_setup_hook(self, hook):
        if hook in self.setup_hooks:
            self.setup_hooks.remove(hook)

    def add_post_input_hook(self, hook):
        self.post_input_hooks.append(hook)

    def remove_post_input_hook(self, hook):
        if hook in self.post_input_hooks:
            self.post_input_hooks.remove(hook)

    def read(self, text, *, command=None, reads_command_name=False, answer=None):
        """Open a prompt, let the hooks run, return what gets accepted."""
        prompt = Prompt(text=text, command=command, reads_command_name=reads_command_name)
        self.stack.append(prompt)
        self.history.append(prompt)
        try:
            for hook in list(self.setup_hooks):
                hook(prompt)
            # The user types an answer unless the prompt was accepted already
            if answer is not None and not prompt.confirmed:
                prompt.content = answer
            self.after_input()
            return prompt.content
        finally:
            if prompt in self.stack:
                self.stack.remove(prompt)

    def after_input(self):
        for hook in list(self.post_input_hooks):
            hook()

    def replace_content(self, prompt, text):
        prompt.content = text

    def confirm(self, prompt):
        prompt.confirmed = True

    def depth(self):
        return len(self.stack)

    def unwind(self, on_complete):
        self.pending_unwinds.append(on_complete)

    def finish_unwind(self):
        self.stack.clear()
        callbacks, self.pending_unwinds = self.pending_unwinds, []
        for callback in callbacks:
            callback()


class FakeViews:
    def __init__(self, width=80):
        self.width = width
        self.current = "main"
        self.selected = []
        self.messages = []
        self.inserted = []
        self.kills = []
        self.views = {}
        self.bindings = {}
        self.indicators = {}
        self.suppressed = False
        self.suppression_log = []
        self._counter = 0

    def _next_id(self, prefix):
        self._counter += 1
        return f"{prefix}-{self._counter}"

    def current_view(self):
        return self.current

    def select_view(self, view_id):
        self.current = view_id
        self.selected.append(view_id)

    def insert(self, view_id, text):
        self.inserted.append((view_id, text))

    def create_view(self, name, lines, *, kind):
        view_id = self._next_id("view")
        self.views[view_id] = {"name": name, "lines": list(lines), "kind": kind}
        return view_id

    def update_view(self, view_id, lines):
        self.views[view_id]["lines"] = list(lines)

    def viewport_width(self, view_id=None):
        return self.width

    def set_view_bindings(self, view_id, bindings):
        if bindings is None:
            self.bindings.pop(view_id, None)
        else:
            self.bindings[view_id] = dict(bindings)

    def message(self, text):
        self.messages.append(text)

    def show_indicator(self, text, view_id, *, style):
        handle = self._next_id("indicator")
        self.indicators[handle] = (text, view_id, style)
        return handle

    def remove_indicator(self, handle):
        # KeyError here means an indicator was removed twice
        del self.indicators[handle]

    def set_output_suppressed(self, suppressed):
        self.suppressed = suppressed
        self.suppression_log.append(suppressed)

    def push_kill(self, text):
        self.kills.append(text)


class FakeKeys:
    def __init__(self):
        self.scopes = []

    def push_scope(self, scope):
        self.scopes.append(scope)

    def pop_scope(self, scope):
        if scope in self.scopes:
            self.scopes.remove(scope)

    def press(self, key):
        return self.scopes[-1].press(key)


class FakeCommands:
    """Host commands; unknown ones read a single argument from a prompt."""

    def __init__(self, prompts):
        self.prompts = prompts
        self.calls = []
        self.results = []
        self.handlers = {}

    def define(self, name, handler):
        self.handlers[name] = handler

    def run_command(self, name, arg=None):
        self.calls.append((name, arg))
        handler = self.handlers.get(name)
        if handler is not None:
            return handler(arg)
        value = self.prompts.read(f"{name}: ", command=name)
        self.results.append((name, value))
        return value


class FakeScheduler:
    def __init__(self):
        self.pending = []

    def call_soon(self, callback):
        self.pending.append(callback)

    def run_pending(self):
        callbacks, self.pending = self.pending, []
        return [callback() for callback in callbacks]


@pytest.fixture
def prompts():
    return FakePrompts()


@pytest.fixture
def views():
    return FakeViews()


@pytest.fixture
def keys():
    return FakeKeys()


@pytest.fixture
def commands(prompts):
    return FakeCommands(prompts)


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def host(prompts, views, keys, commands, scheduler):
    return Host(prompts=prompts, views=views, keys=keys, commands=commands, scheduler=scheduler)


@pytest.fixture
def test_settings():
    return Settings(
        log_level="DEBUG",
        config_file="",
        allow_edit_default=False,
        quit_after_action=False,
        indicator="status",
        help_keys=["C-h"],
    )


@pytest.fixture
def dispatch_config():
    return DispatchConfig()


@pytest.fixture
def engine(host, test_settings, dispatch_config):
    return create_engine(host, test_settings, dispatch_config)


@pytest.fixture
def file_prompt():
    return Context(
        prompt_active=True,
        prompt_text="Find file: ",
        category="file",
        candidates=("a.txt", "bb.txt", "ccc.txt"),
        current_match="a.txt",
        command="find-file",
        view_id="main",
    )
