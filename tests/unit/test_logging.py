"""
Tests for the logging module and request tracing middleware.
"""

import json
import logging

import pytest
import structlog

from dayplay_feed.core.logging import (
    LoggerMixin,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    unbind_context,
)


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def test_configure_development_mode(self):
        """Test that development mode uses console renderer."""
        # Should not raise
        configure_logging(json_logs=False, log_level="DEBUG")

    def test_configure_production_mode(self):
        """Test that production mode uses JSON renderer."""
        # Should not raise
        configure_logging(json_logs=True, log_level="INFO")

    def test_configure_log_level(self):
        """Test that log level is correctly set."""
        configure_logging(log_level="WARNING")

        assert logging.getLogger().level == logging.WARNING

    def test_quiets_http_client_loggers(self):
        configure_logging(log_level="DEBUG")

        assert logging.getLogger("httpx").level == logging.WARNING


class TestGetLogger:
    """Tests for get_logger function."""

    def test_get_named_logger(self):
        logger = get_logger("dayplay_feed.test")

        assert hasattr(logger, "info")
        assert hasattr(logger, "debug")
        assert hasattr(logger, "error")

    def test_logger_can_log(self):
        """Test that logger can log pipeline counters."""
        configure_logging(json_logs=False, log_level="DEBUG")
        logger = get_logger("test")

        # Should not raise
        logger.info("Radius filter applied", before=120, after=48, radius_km=15)
        logger.debug("Exclusion", excluded=3)
        logger.error("Upstream fetch failed", source="catalog")


class TestContextBinding:
    """Tests for context binding functions."""

    def test_bind_context(self):
        clear_context()
        bind_context(user_id="123", request_id="abc")

        ctx = structlog.contextvars.get_contextvars()
        assert ctx.get("user_id") == "123"
        assert ctx.get("request_id") == "abc"

        clear_context()

    def test_clear_context(self):
        bind_context(user_id="123")
        clear_context()

        assert "user_id" not in structlog.contextvars.get_contextvars()

    def test_unbind_specific_context(self):
        clear_context()
        bind_context(user_id="123", request_id="abc", session_id="xyz")

        unbind_context("session_id")

        ctx = structlog.contextvars.get_contextvars()
        assert ctx.get("user_id") == "123"
        assert "session_id" not in ctx

        clear_context()


class TestLoggerMixin:
    """Tests for LoggerMixin class."""

    def test_mixin_provides_logger(self):
        class Store(LoggerMixin):
            pass

        assert Store().logger is not None

    def test_supabase_stores_use_mixin(self, mock_supabase_client):
        from dayplay_feed.feed.stores import SupabaseCatalogStore

        store = SupabaseCatalogStore(mock_supabase_client)

        assert isinstance(store, LoggerMixin)
        store.logger.debug("Working")


class TestJSONOutput:
    """Tests for JSON logging output."""

    def test_json_output_is_valid_json(self, capsys):
        configure_logging(json_logs=True, log_level="INFO")
        logger = get_logger("json_test")

        logger.info("Feed served", items=20, total=48)

        captured = capsys.readouterr()
        for line in captured.out.strip().split("\n"):
            if line:
                data = json.loads(line)
                assert "event" in data


class TestRequestTracing:
    """Tests for the request tracing middleware."""

    def test_request_id_header_added(self, client):
        response = client.get("/live")

        assert response.status_code == 200
        assert response.headers.get("X-Request-ID")

    def test_request_id_echoed(self, client):
        response = client.get("/live", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"

    def test_context_cleared_after_request(self, client):
        client.get("/api/feed", params={"user_id": "u-1"})

        assert "request_id" not in structlog.contextvars.get_contextvars()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
