"""Unit tests for structured logging configuration."""

from unittest.mock import patch

import httpx
import pytest
from fastapi import FastAPI

from attic_import.observability.logging import (
    StructuredLogger,
    add_call_context,
    add_correlation_id,
    correlation_scope,
    request_context_scope,
)
from attic_import.observability.middleware import setup_observability


def current_context() -> dict:
    return add_call_context(None, "info", {})


@pytest.mark.unit
class TestStructuredLogger:
    """Tests for StructuredLogger class."""

    def test_init(self):
        logger = StructuredLogger()
        assert logger._configured is False

    @patch("attic_import.observability.logging.logging.basicConfig")
    @patch("attic_import.observability.logging.structlog.configure")
    def test_setup_logging_json_format(self, mock_configure, mock_basic_config):
        """Test setup with JSON format."""
        logger = StructuredLogger()
        logger.setup_logging(json_format=True, log_level="INFO")

        assert logger._configured is True
        mock_basic_config.assert_called_once()
        processors = mock_configure.call_args[1]["processors"]
        assert any("JSONRenderer" in str(type(p)) for p in processors)
        assert add_correlation_id in processors
        assert add_call_context in processors

    @patch("attic_import.observability.logging.logging.basicConfig")
    @patch("attic_import.observability.logging.structlog.configure")
    def test_setup_logging_console_format(self, mock_configure, mock_basic_config):
        """Test setup with console format."""
        logger = StructuredLogger()
        logger.setup_logging(json_format=False, log_level="DEBUG")

        processors = mock_configure.call_args[1]["processors"]
        assert any("ConsoleRenderer" in str(type(p)) for p in processors)

    @patch("attic_import.observability.logging.logging.basicConfig")
    @patch("attic_import.observability.logging.structlog.configure")
    def test_setup_logging_already_configured(self, mock_configure, mock_basic_config):
        logger = StructuredLogger()
        logger._configured = True

        logger.setup_logging(json_format=True)

        mock_configure.assert_not_called()


@pytest.mark.unit
class TestContext:
    """Tests for the context processors and scopes."""

    def test_call_context_does_not_override_event_fields(self):
        with request_context_scope(plugin_id="tmdb_movies", external_id="603"):
            event_dict = add_call_context(None, "info", {"external_id": "override"})

        assert event_dict == {"plugin_id": "tmdb_movies", "external_id": "override"}

    def test_request_context_scope_nests(self):
        with request_context_scope(plugin_id="bgg_boardgames"):
            with request_context_scope(external_id="13"):
                assert current_context() == {"plugin_id": "bgg_boardgames", "external_id": "13"}
            assert current_context() == {"plugin_id": "bgg_boardgames"}
        assert current_context() == {}

    def test_request_context_reset_on_error(self):
        with pytest.raises(RuntimeError):
            with request_context_scope(plugin_id="google_books"):
                raise RuntimeError("boom")

        assert current_context() == {}

    def test_correlation_scope_restores(self):
        with correlation_scope("outer"):
            with correlation_scope("inner"):
                assert add_correlation_id(None, "info", {}) == {"correlation_id": "inner"}
            assert add_correlation_id(None, "info", {}) == {"correlation_id": "outer"}

        assert add_correlation_id(None, "info", {}) == {}


@pytest.mark.unit
class TestCorrelationMiddleware:
    """Tests for the correlation ID middleware."""

    @pytest.fixture
    def app(self) -> FastAPI:
        app = FastAPI()
        setup_observability(app)

        @app.get("/whoami")
        async def whoami():
            return add_correlation_id(None, "info", {})

        return app

    @pytest.mark.asyncio
    async def test_request_id_propagated(self, app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/whoami", headers={"X-Request-ID": "abc-123"})

        assert response.headers["X-Request-ID"] == "abc-123"
        assert response.json() == {"correlation_id": "abc-123"}

    @pytest.mark.asyncio
    async def test_request_id_generated(self, app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/whoami")

        generated = response.headers["X-Request-ID"]
        assert generated
        assert response.json() == {"correlation_id": generated}
