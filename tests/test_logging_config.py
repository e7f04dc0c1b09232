"""Tests for logging setup and step timing."""
import logging

import pytest

from netdeploy.utils.audit_log import audit_logger
from netdeploy.utils.logging_config import (
    get_log_file,
    get_log_level,
    perf_logger,
    setup_logging,
    timed_section,
)


@pytest.fixture
def restore_loggers():
    loggers = [logging.getLogger("netdeploy"), perf_logger, audit_logger]
    saved = [(lg, list(lg.handlers), lg.level, lg.propagate) for lg in loggers]
    yield
    for lg, handlers, level, propagate in saved:
        for handler in lg.handlers:
            if handler not in handlers:
                handler.close()
        lg.handlers[:] = handlers
        lg.setLevel(level)
        lg.propagate = propagate


class TestEnvironment:
    """Tests for environment-driven settings."""

    def test_default_level(self, monkeypatch):
        monkeypatch.delenv("NETDEPLOY_LOG_LEVEL", raising=False)
        assert get_log_level() == logging.INFO

    def test_level_from_env(self, monkeypatch):
        monkeypatch.setenv("NETDEPLOY_LOG_LEVEL", "debug")
        assert get_log_level() == logging.DEBUG

    def test_unknown_level_falls_back(self, monkeypatch):
        monkeypatch.setenv("NETDEPLOY_LOG_LEVEL", "chatty")
        assert get_log_level() == logging.INFO

    def test_log_file_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("NETDEPLOY_LOG_FILE", str(tmp_path / "x.log"))
        assert get_log_file() == tmp_path / "x.log"


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_creates_log_files(self, monkeypatch, tmp_path, restore_loggers):
        log_file = tmp_path / "logs" / "netdeploy.log"
        monkeypatch.setenv("NETDEPLOY_LOG_FILE", str(log_file))

        setup_logging()
        logging.getLogger("netdeploy.deploy").info("hello")

        assert log_file.exists()
        assert "hello" in log_file.read_text()
        assert perf_logger.propagate is False
        assert (tmp_path / "logs" / "audit.log").exists()


class TestTimedSection:
    """Tests for timed_section."""

    @pytest.mark.asyncio
    async def test_logs_success(self, caplog):
        with caplog.at_level(logging.INFO, logger="netdeploy.perf"):
            async with timed_section("backup", device_id="core-rtr-01", lines=3):
                pass

        assert "backup" in caplog.text
        assert "core-rtr-01" in caplog.text
        assert "OK" in caplog.text
        assert "lines=3" in caplog.text

    @pytest.mark.asyncio
    async def test_logs_and_reraises_failure(self, caplog):
        with caplog.at_level(logging.INFO, logger="netdeploy.perf"):
            with pytest.raises(OSError):
                async with timed_section("apply", device_id="core-rtr-01"):
                    raise OSError("link down")

        assert "FAIL: link down" in caplog.text
