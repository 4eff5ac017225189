"""
Tests for custom exception classes and the HTTP error envelope.
"""

import asyncio
import json
from unittest.mock import MagicMock

from fastapi import status

from pagebuilder.exceptions import (
    BlockNotFoundError,
    CircularDependencyError,
    DuplicateBlockTypeError,
    ErrorCode,
    InitializationTimeoutError,
    InvalidOperationError,
    NotAContainerError,
    PageBuilderError,
    PluginNotFoundError,
    ResourceNotFoundError,
    TemplateStageError,
    UnknownBlockTypeError,
    ValidationError,
)


class TestPageBuilderError:
    """Test base PageBuilderError class"""

    def test_default(self):
        exc = PageBuilderError("Test error")
        assert str(exc) == "Test error"
        assert exc.message == "Test error"
        assert exc.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert exc.details == {}
        assert exc.error_code is ErrorCode.INTERNAL_ERROR

    def test_with_details(self):
        exc = PageBuilderError("Test error", status_code=status.HTTP_400_BAD_REQUEST, details={"count": 42})
        assert exc.status_code == 400
        assert exc.details["count"] == 42


class TestPluginLifecycleExceptions:
    def test_circular_dependency(self):
        exc = CircularDependencyError(["a", "b", "a"])
        assert exc.cycle == ["a", "b", "a"]
        assert exc.message == "Circular dependency detected: a -> b -> a"
        assert exc.error_code is ErrorCode.PLUGIN_CIRCULAR_DEPENDENCY

    def test_initialization_timeout(self):
        exc = InitializationTimeoutError("tailwind", 10.0)
        assert exc.name == "tailwind"
        assert exc.timeout == 10.0
        assert exc.message == "tailwind initialization timeout after 10s"
        assert exc.status_code == status.HTTP_503_SERVICE_UNAVAILABLE

    def test_plugin_not_found(self):
        exc = PluginNotFoundError("seo")
        assert exc.status_code == status.HTTP_404_NOT_FOUND
        assert exc.message == "Plugin with id 'seo' not found"
        assert exc.error_code is ErrorCode.PLUGIN_NOT_FOUND
        assert isinstance(exc, ResourceNotFoundError)


class TestBlockExceptions:
    def test_unknown_block_type(self):
        exc = UnknownBlockTypeError("carousel")
        assert exc.status_code == status.HTTP_400_BAD_REQUEST
        assert exc.details == {"type_id": "carousel"}

    def test_not_a_container(self):
        exc = NotAContainerError("t1", "text")
        assert exc.details == {"block_id": "t1", "type_id": "text"}
        assert exc.error_code is ErrorCode.BLOCK_NOT_A_CONTAINER

    def test_duplicate_block_type(self):
        assert DuplicateBlockTypeError("hero").status_code == status.HTTP_409_CONFLICT

    def test_block_not_found_without_id(self):
        exc = BlockNotFoundError()
        assert exc.message == "Block not found"
        assert exc.error_code is ErrorCode.BLOCK_NOT_FOUND


class TestValidationExceptions:
    def test_validation_error_with_field(self):
        exc = ValidationError("Block type is required", field="typeId")
        assert exc.details == {"field": "typeId"}
        assert exc.status_code == status.HTTP_400_BAD_REQUEST

    def test_invalid_operation(self):
        exc = InvalidOperationError("nope", {"block_id": "x"})
        assert exc.error_code is ErrorCode.INVALID_OPERATION
        assert exc.details == {"block_id": "x"}

    def test_template_stage_error(self):
        exc = TemplateStageError("bad syntax", line=3)
        assert exc.details == {"line": 3}
        assert TemplateStageError("bad").details == {}


class TestExceptionHandlers:
    def _request(self, path: str = "/api/v1/test"):
        request = MagicMock()
        request.url.path = path
        request.method = "GET"
        return request

    def test_page_builder_handler_envelope(self):
        from pagebuilder.exception_handlers import page_builder_exception_handler

        response = asyncio.run(page_builder_exception_handler(self._request(), UnknownBlockTypeError("carousel")))
        body = json.loads(response.body)
        assert response.status_code == 400
        assert body["error"] == {
            "status_code": 400,
            "message": "Unknown block type 'carousel'",
            "type": "Bad Request",
            "error_code": "BLOCK_UNKNOWN_TYPE",
            "details": {"type_id": "carousel"},
            "path": "/api/v1/test",
        }

    def test_unhandled_handler_hides_internals(self):
        from pagebuilder.exception_handlers import unhandled_exception_handler

        response = asyncio.run(unhandled_exception_handler(self._request(), RuntimeError("secret detail")))
        body = json.loads(response.body)
        assert response.status_code == 500
        assert "secret detail" not in body["error"]["message"]
        assert body["error"]["error_code"] == "INTERNAL_ERROR"

    def test_error_type_names(self):
        from pagebuilder.exception_handlers import get_error_type, get_http_error_code

        assert get_error_type(404) == "Not Found"
        assert get_error_type(418) == "Error"
        assert get_http_error_code(503) == "SERVICE_UNAVAILABLE"
        assert get_http_error_code(418) == "UNKNOWN_ERROR"
