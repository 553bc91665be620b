import asyncio
import json  # noqa: F401
import logging

import pytest

from actdispatch import config
from actdispatch.annotators import file_annotation, human_size, package_annotation, symbol_annotation
from actdispatch.host import AsyncioScheduler
from actdispatch.logging_utils import create_session_id, log_dispatch, setup_dispatch_logger


class TestLogging:
    def test_setup_is_idempotent(self):
        logger = setup_dispatch_logger("actdispatch.test_setup", "DEBUG")
        again = setup_dispatch_logger("actdispatch.test_setup", "WARNING")
        assert logger is again
        assert len(logger.handlers) == 1
        assert logger.level == logging.WARNING

    def test_log_dispatch_success(self, caplog):
        logger = logging.getLogger("actdispatch.test_success")
        with caplog.at_level(logging.INFO, logger="actdispatch.test_success"):
            log_dispatch(logger, "session_1", "file", "notes.md", "find-file", True, 1.234,
                         prefix_arg=4, originating_command="find-file", deferred=True)

        [record] = caplog.records
        assert record.levelno == logging.INFO
        assert record.getMessage().startswith("✅ Find File:")
        assert "'prefix_arg': 4" in record.getMessage()
        assert "'deferred': True" in record.getMessage()
        assert "'duration_ms': 1.2" in record.getMessage()

    def test_log_dispatch_failure(self, caplog):
        logger = logging.getLogger("actdispatch.test_failure")
        long_target = "line\n" * 100
        with caplog.at_level(logging.INFO, logger="actdispatch.test_failure"):
            log_dispatch(logger, "session_2", "file", long_target, "delete-file", False, 0.5, error="denied")

        [record] = caplog.records
        assert record.levelno == logging.ERROR
        assert record.getMessage().startswith("❌ Delete File:")
        assert "\\n" not in record.getMessage()
        assert "..." in record.getMessage()

    def test_session_ids_are_unique(self):
        ids = {create_session_id() for _ in range(50)}
        assert len(ids) == 50
        assert all(i.startswith("session_") for i in ids)


class TestScheduler:
    def test_callbacks_run_on_next_tick(self):
        calls = []

        async def main():
            scheduler = AsyncioScheduler()
            scheduler.call_soon(lambda: calls.append("later"))
            calls.append("now")
            await asyncio.sleep(0)

        asyncio.run(main())
        assert calls == ["now", "later"]


class TestAnnotators:
    def test_human_size(self):
        assert human_size(512) == "512B"
        assert human_size(2048) == "2.0K"
        assert human_size(5 * 1024 ** 3) == "5.0G"

    def test_file_annotation(self, tmp_path):
        note = tmp_path / "note.md"
        note.write_text("hello", encoding="utf-8")
        assert file_annotation(str(note)).startswith("5B  ")
        assert file_annotation(str(tmp_path)).startswith("dir  ")
        assert file_annotation(str(tmp_path / "missing")) is None

    def test_symbol_annotation(self):
        assert symbol_annotation("json.dumps").startswith("Serialize")
        assert symbol_annotation("len") == "Return the number of items in a container."
        assert symbol_annotation("json.no_such_name") is None
        assert symbol_annotation("never_imported_module.thing") is None

    def test_package_annotation(self):
        assert package_annotation("pytest").split()[0][0].isdigit()
        assert package_annotation("definitely-not-a-package-xyz") is None


class TestSettings:
    def test_env_flag(self, monkeypatch):
        monkeypatch.setenv("ACTDISPATCH_TEST_FLAG", "Yes")
        assert config._env_flag("ACTDISPATCH_TEST_FLAG")
        monkeypatch.setenv("ACTDISPATCH_TEST_FLAG", "off")
        assert not config._env_flag("ACTDISPATCH_TEST_FLAG")
        monkeypatch.delenv("ACTDISPATCH_TEST_FLAG")
        assert not config._env_flag("ACTDISPATCH_TEST_FLAG")

    def test_env_list(self, monkeypatch):
        monkeypatch.setenv("ACTDISPATCH_TEST_KEYS", "C-h, ?,, <f1>")
        assert config._env_list("ACTDISPATCH_TEST_KEYS", "C-h") == ["C-h", "?", "<f1>"]
        monkeypatch.delenv("ACTDISPATCH_TEST_KEYS")
        assert config._env_list("ACTDISPATCH_TEST_KEYS", "C-h") == ["C-h"]

    def test_settings_override(self):
        settings = config.Settings(allow_edit_default=True, help_keys=["?"])
        assert settings.allow_edit_default
        assert settings.help_keys == ["?"]
        assert settings.indicator in ("status", "inline")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
