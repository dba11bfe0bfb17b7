"""Tests for error rendering and logging in the HTTP layer."""

import json
from unittest.mock import MagicMock, patch

import pytest

from mosaic.lib import observability
from mosaic.lib.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    StorageError,
    ValidationError,
    internal_server_error_handler,
    mosaic_error_handler,
)


@pytest.fixture
def fake_request():
    """Create a minimal mock request for the error handlers."""
    request = MagicMock()
    request.method = "POST"
    request.url.path = "/api/collections/treatment"
    return request


def _body(response):
    return json.loads(response.body)


class TestObservabilityException:
    """Test the observability.exception() facade function."""

    def test_returns_true_when_available(self):
        with patch.object(observability, "_logfire", MagicMock()) as mock_lf, \
             patch.object(observability, "_configured", True):
            assert observability.exception("write failed on {path}", path="/x") is True
            mock_lf.exception.assert_called_once_with("write failed on {path}", path="/x")

    def test_returns_false_when_unavailable(self):
        with patch.object(observability, "_logfire", None), \
             patch.object(observability, "_configured", False):
            assert observability.exception("write failed") is False


class TestMosaicErrorHandler:
    """Core errors become {"error": {...}} with their status code."""

    @pytest.mark.asyncio
    async def test_validation_error_names_field(self, fake_request):
        response = await mosaic_error_handler(
            fake_request, ValidationError('Required field "Title" is missing', field="title")
        )

        assert response.status_code == 400
        assert _body(response) == {
            "error": {"status": 400, "message": 'Required field "Title" is missing', "field": "title"}
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "exc,status_code",
        [
            (NotFoundError("Page", "home"), 404),
            (InvalidTransitionError("archived", "published"), 409),
        ],
    )
    async def test_status_codes(self, fake_request, exc, status_code):
        response = await mosaic_error_handler(fake_request, exc)
        assert response.status_code == status_code
        assert _body(response)["error"]["status"] == status_code

    @pytest.mark.asyncio
    async def test_client_errors_are_not_logged(self, fake_request):
        with patch.object(observability, "exception") as mock_exc, \
             patch("mosaic.lib.exceptions.logger") as mock_logger:
            await mosaic_error_handler(fake_request, NotFoundError("Page", "home"))

        mock_exc.assert_not_called()
        mock_logger.error.assert_not_called()

    @pytest.mark.asyncio
    async def test_storage_errors_fall_back_to_stdlib(self, fake_request):
        """Without logfire, storage failures are logged through logging."""
        exc = StorageError("page", "disk full")
        with patch.object(observability, "exception", return_value=False), \
             patch("mosaic.lib.exceptions.logger") as mock_logger:
            response = await mosaic_error_handler(fake_request, exc)

        assert response.status_code == 500
        mock_logger.error.assert_called_once()


class TestInternalServerErrorHandler:
    """Unexpected exceptions are logged once and hidden from clients."""

    @pytest.mark.asyncio
    async def test_uses_observability_when_available(self, fake_request):
        with patch.object(observability, "exception", return_value=True) as mock_exc, \
             patch("mosaic.lib.exceptions.logger") as mock_logger:
            response = await internal_server_error_handler(fake_request, RuntimeError("boom"))

        mock_exc.assert_called_once_with(
            "Unhandled exception on {method} {path}",
            method="POST",
            path="/api/collections/treatment",
        )
        mock_logger.error.assert_not_called()
        assert response.status_code == 500

    @pytest.mark.asyncio
    async def test_does_not_leak_details(self, fake_request):
        with patch.object(observability, "exception", return_value=False), \
             patch("mosaic.lib.exceptions.logger"):
            response = await internal_server_error_handler(fake_request, RuntimeError("secret dsn"))

        assert "secret" not in response.body.decode()
        assert _body(response)["error"]["message"] == "Internal Server Error"
