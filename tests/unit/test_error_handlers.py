"""
Unit tests for Error Handlers

测试全局异常处理和统一错误响应格式。
"""

import json
from unittest.mock import MagicMock

import httpx
import pytest
from fastapi import HTTPException, Request

from app.core.error_handlers import (
    ErrorResponse,
    general_exception_handler,
    http_exception_handler,
    httpx_exception_handler,
    relay_exception_handler,
    validation_exception_handler,
)
from app.core.errors import ConfigurationError, MailboxFetchError


@pytest.fixture
def request_mock():
    """模拟请求对象"""
    request = MagicMock(spec=Request)
    request.url.path = "/api/process-mails"
    request.method = "GET"
    return request


def body_of(response):
    return json.loads(response.body.decode())


class TestErrorResponse:
    """测试 ErrorResponse 类"""

    def test_error_response_basic(self):
        """测试基本错误响应"""
        error = ErrorResponse(
            error_code="TEST_ERROR",
            message="Test error message",
            status_code=400,
        )

        assert error.to_dict() == {
            "success": False,
            "error": "Test error message",
            "error_code": "TEST_ERROR",
        }

    def test_error_response_with_details(self):
        """测试带详细信息的错误响应"""
        error = ErrorResponse(
            error_code="TEST_ERROR",
            message="Test error",
            status_code=400,
            details={"field": "limit"},
        )

        assert error.to_dict()["details"] == {"field": "limit"}

    def test_to_response_status(self):
        """测试 JSONResponse 状态码"""
        response = ErrorResponse("X", "x", 418).to_response()

        assert response.status_code == 418


class TestRelayExceptionHandler:
    """测试业务异常处理器"""

    @pytest.mark.asyncio
    async def test_configuration_error(self, request_mock):
        """测试 WORKER_URL 缺失"""
        exc = ConfigurationError("WORKER_URL not configured")

        response = await relay_exception_handler(request_mock, exc)

        assert response.status_code == 500
        body = body_of(response)
        assert body["success"] is False
        assert body["error"] == "WORKER_URL not configured"
        assert body["error_code"] == "CONFIGURATION_ERROR"

    @pytest.mark.asyncio
    async def test_mailbox_fetch_error_keeps_upstream_status(self, request_mock):
        """测试上游状态码透传"""
        response = await relay_exception_handler(request_mock, MailboxFetchError(403))

        assert response.status_code == 403
        body = body_of(response)
        assert body["error"] == "Mail API returned 403"
        assert body["error_code"] == "UPSTREAM_ERROR"


class TestHttpExceptionHandler:
    """测试 HTTP 异常处理器"""

    @pytest.mark.asyncio
    async def test_handle_404_error(self, request_mock):
        """测试处理 404 错误"""
        exc = HTTPException(status_code=404, detail="Not Found")

        response = await http_exception_handler(request_mock, exc)

        assert response.status_code == 404
        assert body_of(response)["error_code"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_handle_503_error(self, request_mock):
        """测试处理 503 服务不可用错误"""
        exc = HTTPException(status_code=503, detail="Service unavailable")

        response = await http_exception_handler(request_mock, exc)

        assert response.status_code == 503
        body = body_of(response)
        assert body["error_code"] == "SERVICE_UNAVAILABLE"
        assert body["error"] == "Service unavailable"

    @pytest.mark.asyncio
    async def test_handle_unknown_status(self, request_mock):
        """测试未映射的状态码"""
        exc = HTTPException(status_code=418, detail="teapot")

        response = await http_exception_handler(request_mock, exc)

        assert body_of(response)["error_code"] == "UNKNOWN_ERROR"


class TestHttpxExceptionHandler:
    """测试 httpx 异常处理器"""

    @pytest.mark.asyncio
    async def test_handle_timeout(self, request_mock):
        """测试处理超时"""
        exc = httpx.ReadTimeout("timed out")

        response = await httpx_exception_handler(request_mock, exc)

        assert response.status_code == 504
        assert body_of(response)["error_code"] == "UPSTREAM_TIMEOUT"

    @pytest.mark.asyncio
    async def test_handle_request_error(self, request_mock):
        """测试处理网络请求错误"""
        exc = httpx.ConnectError("Connection refused")

        response = await httpx_exception_handler(request_mock, exc)

        assert response.status_code == 503
        body = body_of(response)
        assert body["error_code"] == "NETWORK_ERROR"
        assert body["details"]["exception_type"] == "ConnectError"

    @pytest.mark.asyncio
    async def test_handle_other_httpx_error(self, request_mock):
        """测试处理其他 httpx 异常"""
        exc = httpx.HTTPStatusError(
            "Bad response", request=MagicMock(), response=MagicMock()
        )

        response = await httpx_exception_handler(request_mock, exc)

        assert response.status_code == 502
        assert body_of(response)["error_code"] == "HTTP_CLIENT_ERROR"


class TestGeneralExceptionHandler:
    """测试一般异常处理器"""

    @pytest.mark.asyncio
    async def test_hides_internal_message(self, request_mock):
        """测试不暴露内部错误细节"""
        exc = RuntimeError("secret internals")

        response = await general_exception_handler(request_mock, exc)

        assert response.status_code == 500
        body = body_of(response)
        assert body["error"] == "An unexpected error occurred"
        assert "secret internals" not in json.dumps(body)
        assert body["details"]["exception_type"] == "RuntimeError"


class TestValidationExceptionHandler:
    """测试验证异常处理器"""

    @pytest.mark.asyncio
    async def test_collects_errors(self, request_mock):
        """测试收集字段错误"""
        exc = MagicMock()
        exc.errors.return_value = [
            {"loc": ("query", "limit"), "msg": "must be an integer", "type": "int_parsing"}
        ]

        response = await validation_exception_handler(request_mock, exc)

        assert response.status_code == 422
        body = body_of(response)
        assert body["error_code"] == "VALIDATION_ERROR"
        assert body["details"]["errors"] == [
            {"field": "query.limit", "message": "must be an integer"}
        ]
