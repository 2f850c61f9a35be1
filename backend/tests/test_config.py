"""Tests for config.py and utils/logger.py."""

import importlib
import json
import logging
import sys

import pytest

import fpl_sync.config as config_module
from fpl_sync.config import Config
from fpl_sync.utils.logger import JSONFormatter, setup_logging


class TestConfig:
    def test_requires_supabase(self):
        with pytest.raises(ValueError) as exc_info:
            Config(supabase_url="", supabase_key="")
        assert "SUPABASE_URL is required" in str(exc_info.value)
        assert "SUPABASE_KEY is required" in str(exc_info.value)

    def test_rejects_unknown_tracking_mode(self):
        with pytest.raises(ValueError, match="PLAYER_CHANGE_TRACKING"):
            Config(supabase_url="https://x.supabase.co", supabase_key="k", player_change_tracking="full")

    def test_tracking_mode_normalized(self):
        config = Config(supabase_url="https://x.supabase.co", supabase_key="k", player_change_tracking=" Basic ")
        assert config.player_change_tracking == "basic"

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ValueError, match="REQUEST_TIMEOUT"):
            Config(supabase_url="https://x.supabase.co", supabase_key="k", request_timeout=0)

    def test_fixtures_fetch_all_by_default(self, monkeypatch):
        monkeypatch.delenv("FIXTURES_FUTURE_ONLY", raising=False)
        module = importlib.reload(config_module)
        try:
            config = module.Config(supabase_url="https://x.supabase.co", supabase_key="k")
            assert config.fixtures_future_only is False
        finally:
            monkeypatch.undo()
            importlib.reload(config_module)


class TestLogging:
    def test_json_formatter_lifts_extras(self):
        record = logging.LogRecord("fpl_sync.refresh.reconciler", logging.INFO, __file__, 1,
                                   "Player updated", None, None)
        record.entity = "player"
        record.entity_id = 42
        record.outcome = "updated"

        data = json.loads(JSONFormatter().format(record))

        assert data["message"] == "Player updated"
        assert data["level"] == "INFO"
        assert data["entity_id"] == 42
        assert data["outcome"] == "updated"
        assert "msg" not in data

    def test_json_formatter_includes_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            exc_info = sys.exc_info()
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, exc_info)

        data = json.loads(JSONFormatter().format(record))

        assert "RuntimeError: boom" in data["exception"]

    def test_setup_logging_with_file(self, config, tmp_path):
        config.log_format = "json"
        config.log_level = "INFO"
        log_file = tmp_path / "logs" / "sync.log"
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        try:
            setup_logging(config, log_file=log_file)
            logging.getLogger("fpl_sync.test").info("hello", extra={"entity_id": 7})
            for handler in root.handlers:
                handler.flush()
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

        line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
        assert json.loads(line)["entity_id"] == 7

    def test_setup_logging_quiets_http_client(self, config):
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        try:
            setup_logging(config)
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING
