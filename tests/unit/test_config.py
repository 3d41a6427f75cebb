"""Tests for configuration loading and process logging setup."""
from __future__ import annotations

import logging
from datetime import date, timedelta
from pathlib import Path
from typing import Iterator

import pytest

from hookgate.config import ConfigLoader, GateConfig
from hookgate.logging_setup import configure_logging, log_file_for


@pytest.fixture()
def loader() -> ConfigLoader:
    return ConfigLoader()


@pytest.fixture(autouse=True)
def _clear_debug_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("HOOKGATE_DEBUG", raising=False)
    monkeypatch.delenv("HOOKGATE_VERBOSE", raising=False)


@pytest.fixture()
def reset_logger() -> Iterator[None]:
    yield
    package_logger = logging.getLogger("hookgate")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.setLevel(logging.NOTSET)


class TestConfigLoader:
    def test_missing_file_gives_defaults(self, loader: ConfigLoader, tmp_path: Path) -> None:
        config = loader.load(tmp_path / "hookgate.yaml")
        assert config.workflows.directory == Path(".github/hooks")
        assert config.audit.enabled is False
        assert config.logging.level == "INFO"
        assert config.runner.default_shell in ("bash", "pwsh")

    def test_empty_file_gives_defaults(self, loader: ConfigLoader, tmp_path: Path) -> None:
        path = tmp_path / "hookgate.yaml"
        path.write_text("", encoding="utf-8")
        assert loader.load(path) == GateConfig()

    def test_sections_are_parsed(self, loader: ConfigLoader) -> None:
        config = loader.load_string(
            "workflows:\n  directory: ci/hooks\n"
            "runner:\n  default_shell: ' sh '\n  action_cache_dir: /var/cache/actions\n"
            "audit:\n  retention_days: 5\n"
            "logging:\n  level: debug\n  directory: logs\n"
        )
        assert config.workflows.directory == Path("ci/hooks")
        assert config.runner.default_shell == "sh"
        assert config.runner.action_cache_dir == Path("/var/cache/actions")
        assert config.audit.retention_days == 5
        assert config.logging.level == "DEBUG"
        assert config.logging.directory == Path("logs")

    @pytest.mark.parametrize(
        "content",
        [
            "runner:\n  default_shell: '  '\n",
            "logging:\n  level: loud\n",
            "audit:\n  retention_days: 0\n",
        ],
    )
    def test_invalid_values_raise(self, loader: ConfigLoader, content: str) -> None:
        with pytest.raises(ValueError):
            loader.load_string(content)

    def test_unknown_keys_allowed(self, loader: ConfigLoader) -> None:
        assert loader.load_string("future_section:\n  key: 1\n").audit.enabled is False


class TestDebugOverride:
    @pytest.mark.parametrize("value", ["1", "true", "yes"])
    def test_env_forces_debug(self, monkeypatch: pytest.MonkeyPatch, value: str) -> None:
        monkeypatch.setenv("HOOKGATE_DEBUG", value)
        config = GateConfig()
        assert config.debug_forced() is True
        assert config.effective_log_level() == "DEBUG"

    @pytest.mark.parametrize("value", ["", "0", "false"])
    def test_falsy_values_ignored(self, monkeypatch: pytest.MonkeyPatch, value: str) -> None:
        monkeypatch.setenv("HOOKGATE_VERBOSE", value)
        assert GateConfig().effective_log_level() == "INFO"


@pytest.mark.usefixtures("reset_logger")
class TestConfigureLogging:
    def test_no_directory_disables_file_logging(self) -> None:
        assert configure_logging(GateConfig()) is None
        assert logging.getLogger("hookgate").handlers == []

    def test_writes_day_file_relative_to_project(self, loader: ConfigLoader, tmp_path: Path) -> None:
        config = loader.load_string("logging:\n  directory: logs\n")
        log_file = configure_logging(config, tmp_path)
        assert log_file == log_file_for(tmp_path / "logs")
        logging.getLogger("hookgate.test").info("hello from test")
        for handler in logging.getLogger("hookgate").handlers:
            handler.flush()
        assert "hello from test" in log_file.read_text(encoding="utf-8")

    def test_purges_expired_day_files(self, loader: ConfigLoader, tmp_path: Path) -> None:
        logs = tmp_path / "logs"
        logs.mkdir()
        expired = log_file_for(logs, date.today() - timedelta(days=30))
        kept = log_file_for(logs, date.today() - timedelta(days=1))
        expired.write_text("old", encoding="utf-8")
        kept.write_text("recent", encoding="utf-8")
        configure_logging(loader.load_string("logging:\n  directory: logs\n  retention_days: 7\n"), tmp_path)
        assert not expired.exists()
        assert kept.exists()

    def test_debug_env_adds_stderr_handler(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HOOKGATE_DEBUG", "1")
        configure_logging(GateConfig())
        package_logger = logging.getLogger("hookgate")
        assert package_logger.level == logging.DEBUG
        assert len(package_logger.handlers) == 1

    def test_reconfigure_replaces_handlers(self, loader: ConfigLoader, tmp_path: Path) -> None:
        config = loader.load_string("logging:\n  directory: logs\n")
        configure_logging(config, tmp_path)
        configure_logging(config, tmp_path)
        assert len(logging.getLogger("hookgate").handlers) == 1

    def test_log_file_name(self, tmp_path: Path) -> None:
        assert log_file_for(tmp_path, date(2024, 1, 2)).name == "hookgate-2024-01-02.log"
