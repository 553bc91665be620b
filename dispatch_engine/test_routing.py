import pytest

from actdispatch.host import Prompt
from actdispatch.routing import (
    DEFAULT_ACTION,
    InjectionAction,
    InjectionPolicy,
    SetupOverrides,
    eval_wrap,
    shell_quote,
)


class TestInjectionPolicy:
    def test_confirms_by_default(self):
        decision = InjectionPolicy().decide(Prompt("Find file: ", command="find-file"), "find-file")
        assert decision.action == InjectionAction.CONFIRM
        assert decision.command == "find-file"

    def test_allow_edit_list(self):
        decision = InjectionPolicy().decide(Prompt("Delete: ", command="delete-file"), "delete-file")
        assert decision.action == InjectionAction.EDIT

    def test_allow_edit_default_with_skip_list(self):
        policy = InjectionPolicy(allow_edit_default=True, skip_edit_commands=frozenset({"find-file"}))
        assert policy.decide(Prompt("Find: ", command="find-file"), "find-file").action == InjectionAction.CONFIRM
        assert policy.decide(Prompt("Copy: ", command="copy-file"), "copy-file").action == InjectionAction.EDIT
        # Only the list opposite the default is consulted
        assert policy.allows_edit("delete-file")

    def test_command_name_prompt_is_skipped(self):
        prompt = Prompt("M-x ", command="execute-extended-command", reads_command_name=True)
        decision = InjectionPolicy().decide(prompt, "find-file")
        assert decision.action == InjectionAction.SKIP
        assert decision.reason

    def test_default_action_injects_into_command_name_prompt(self):
        prompt = Prompt("M-x ", command="execute-extended-command", reads_command_name=True)
        assert InjectionPolicy().decide(prompt, DEFAULT_ACTION).action == InjectionAction.CONFIRM


class TestSetupHooks:
    def test_shell_quote(self):
        prompt = Prompt("Shell command: ", command="shell-command")
        assert shell_quote(prompt, "notes.md") == " notes.md"
        assert shell_quote(prompt, "my notes.md") == " 'my notes.md'"

    def test_eval_wrap(self):
        assert eval_wrap(Prompt("Eval: ", command="eval-expression"), "main") == "main()"

    def test_default_overrides(self):
        overrides = SetupOverrides()
        assert overrides.hook_for("shell-command") is shell_quote
        assert overrides.hook_for("eval-expression") is eval_wrap
        assert overrides.hook_for(None) is None

    def test_unknown_hook_name(self):
        with pytest.raises(ValueError):
            SetupOverrides({"shell-command": "missing"}).hook_for("shell-command")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
