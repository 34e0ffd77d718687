# tests/errors/test_base.py
"""Tests for gallery/errors/base.py module."""

from unittest.mock import MagicMock

import orjson

from gallery.errors import BaseAppError, create_exception_handler


def _request(path: str = "/api/test", ip: str = "192.168.1.1") -> MagicMock:
    request = MagicMock()
    request.client.host = ip
    request.url.path = path
    return request


class TestBaseAppError:
    """Tests for BaseAppError exception."""

    def test_default_values(self) -> None:
        """Test default initialization values."""
        error = BaseAppError()
        assert error.detail == "Internal Server Error"
        assert error.status_code == 500

    def test_custom_values(self) -> None:
        """Test custom initialization values."""
        error = BaseAppError(detail="Custom error", status_code=400)
        assert error.detail == "Custom error"
        assert error.status_code == 400

    def test_str_representation(self) -> None:
        """Test string representation returns the detail."""
        assert str(BaseAppError(detail="Test error")) == "Test error"


class TestCreateExceptionHandler:
    """Tests for create_exception_handler factory function."""

    async def test_handler_with_base_app_error(self) -> None:
        """Test handler with BaseAppError exception."""
        logger = MagicMock()
        handler = create_exception_handler(logger)

        response = await handler(_request(), BaseAppError(detail="Test error", status_code=400))

        assert response.status_code == 400
        assert response.body == b'{"detail":"Test error"}'
        logger.warning.assert_called_once_with(
            "Test error for ip: 192.168.1.1 for endpoint /api/test",
        )

    async def test_handler_with_generic_exception(self) -> None:
        """Test handler falls back to 500 for plain exceptions."""
        handler = create_exception_handler(MagicMock())

        response = await handler(_request("/api/error"), ValueError("Something went wrong"))

        assert response.status_code == 500
        assert orjson.loads(response.body)["detail"] == "Internal Server Error"

    async def test_handler_includes_serializable_extras_only(self) -> None:
        """Test extra attributes travel with the body unless they cannot be serialized."""
        handler = create_exception_handler(MagicMock())
        error = BaseAppError(detail="Bad", status_code=422)
        error.field = "name"
        error.codes = ["a", "b"]
        error.cause = RuntimeError("hidden")

        response = await handler(_request(), error)

        body = orjson.loads(response.body)
        assert body == {"detail": "Bad", "field": "name", "codes": ["a", "b"]}
