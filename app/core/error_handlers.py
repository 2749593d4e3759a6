"""
Error Handlers - 全局异常处理和统一错误响应

所有错误都以 {"success": false, "error": "..."} 的格式返回。
"""

import logging
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
import httpx

from app.core.errors import ConfigurationError, MailboxFetchError, MailRelayError

logger = logging.getLogger(__name__)


class ErrorResponse:
    """统一错误响应格式"""

    def __init__(
        self,
        error_code: str,
        message: str,
        status_code: int,
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        初始化错误响应

        Args:
            error_code: 错误代码（例如：CONFIGURATION_ERROR, UPSTREAM_ERROR）
            message: 用户可读的错误消息
            status_code: HTTP 状态码
            details: 可选的详细信息
        """
        self.error_code = error_code
        self.message = message
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        response = {
            "success": False,
            "error": self.message,
            "error_code": self.error_code,
        }

        if self.details:
            response["details"] = self.details

        return response

    def to_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=self.to_dict())


async def relay_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    处理邮件中继的业务异常（配置缺失、上游邮件 API 失败）

    Args:
        request: FastAPI 请求对象
        exc: MailRelayError 实例

    Returns:
        JSONResponse: 统一格式的错误响应
    """
    if isinstance(exc, ConfigurationError):
        error_code = "CONFIGURATION_ERROR"
    elif isinstance(exc, MailboxFetchError):
        error_code = "UPSTREAM_ERROR"
    else:
        error_code = "RELAY_ERROR"

    status_code = getattr(exc, "status_code", status.HTTP_500_INTERNAL_SERVER_ERROR)
    message = getattr(exc, "message", str(exc))

    logger.error(
        f"Relay error ({error_code}): {message}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "status_code": status_code,
        },
    )

    return ErrorResponse(
        error_code=error_code,
        message=message,
        status_code=status_code,
    ).to_response()


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    处理 HTTPException 异常

    Args:
        request: FastAPI 请求对象
        exc: 异常实例

    Returns:
        JSONResponse: 统一格式的错误响应
    """
    status_code = getattr(exc, "status_code", status.HTTP_500_INTERNAL_SERVER_ERROR)
    detail = getattr(exc, "detail", str(exc))

    error_code_map = {
        400: "INVALID_REQUEST",
        401: "AUTHENTICATION_FAILED",
        403: "FORBIDDEN",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        500: "INTERNAL_SERVER_ERROR",
        503: "SERVICE_UNAVAILABLE",
    }
    error_code = error_code_map.get(status_code, "UNKNOWN_ERROR")

    if status_code >= 500:
        logger.error(
            f"HTTP {status_code} error: {detail}",
            extra={"path": request.url.path, "method": request.method},
        )
    else:
        logger.warning(
            f"HTTP {status_code} error: {detail}",
            extra={"path": request.url.path, "method": request.method},
        )

    return ErrorResponse(
        error_code=error_code,
        message=str(detail),
        status_code=status_code,
    ).to_response()


async def httpx_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    处理 httpx 相关异常（访问邮件 API 的网络请求失败）

    Args:
        request: FastAPI 请求对象
        exc: httpx 异常实例

    Returns:
        JSONResponse: 统一格式的错误响应
    """
    if isinstance(exc, httpx.TimeoutException):
        error_code = "UPSTREAM_TIMEOUT"
        error_message = f"Mail API timed out: {exc}"
        final_status = status.HTTP_504_GATEWAY_TIMEOUT
    elif isinstance(exc, httpx.RequestError):
        error_code = "NETWORK_ERROR"
        error_message = f"Network error: {exc}"
        final_status = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        error_code = "HTTP_CLIENT_ERROR"
        error_message = f"HTTP client error: {exc}"
        final_status = status.HTTP_502_BAD_GATEWAY

    logger.error(
        f"HTTPX error: {error_message}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "exception_type": type(exc).__name__,
        },
    )

    return ErrorResponse(
        error_code=error_code,
        message=error_message,
        status_code=final_status,
        details={"exception_type": type(exc).__name__},
    ).to_response()


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    处理未预期的一般异常（不暴露内部错误细节）

    Args:
        request: FastAPI 请求对象
        exc: 异常实例

    Returns:
        JSONResponse: 统一格式的错误响应
    """
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}: {exc}",
        exc_info=exc,
    )

    return ErrorResponse(
        error_code="INTERNAL_SERVER_ERROR",
        message="An unexpected error occurred",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        details={"exception_type": type(exc).__name__},
    ).to_response()


async def validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """处理查询参数验证失败（例如 limit 不是整数）"""
    errors = [
        {"field": ".".join(str(loc) for loc in error["loc"]), "message": error["msg"]}
        for error in exc.errors()
    ]

    logger.warning(f"Invalid query on {request.url.path}: {errors}")

    return ErrorResponse(
        error_code="VALIDATION_ERROR",
        message="Request validation failed",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        details={"errors": errors},
    ).to_response()
