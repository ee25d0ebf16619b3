"""
描述: 网关错误类型定义
主要功能:
    - 每个错误类携带 JSON-RPC 错误码
    - 统一转换为 JSON-RPC error 对象
"""

from __future__ import annotations

from typing import Any


PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
OPERATION_FAILED = -32000


# region 错误基类
class GatewayError(Exception):
    """Base class for all errors surfaced as JSON-RPC error envelopes."""
    code: int = OPERATION_FAILED
    default_message: str = "Operation failed"

    def __init__(self, message: str = "", *, data: Any | None = None) -> None:
        self.message = message or self.default_message
        self.data = data
        super().__init__(self.message)

    def to_error(self) -> dict[str, Any]:
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error
# endregion


# region 协议错误
class ParseError(GatewayError):
    code = PARSE_ERROR
    default_message = "Parse error"


class InvalidRequestError(GatewayError):
    code = INVALID_REQUEST
    default_message = "Invalid Request"


class MethodNotFoundError(GatewayError):
    code = METHOD_NOT_FOUND
    default_message = "Method not found"


class InvalidParamsError(GatewayError):
    """参数校验失败，data 中总是带有出错字段名"""
    code = INVALID_PARAMS
    default_message = "Invalid params"

    def __init__(self, field: str, message: str | None = None) -> None:
        data: dict[str, Any] = {"field": field}
        if message:
            data["message"] = message
        super().__init__(data=data)
        self.field = field
# endregion


# region 操作错误
class OperationError(GatewayError):
    code = OPERATION_FAILED


class PathEscapeError(OperationError):
    default_message = "Access denied: path escapes the output directory"


class SymlinkRefusedError(OperationError):
    default_message = "Access denied: refusing to access a symbolic link"


class BackendError(OperationError):
    """图像生成后端调用失败或未返回可用图像"""
    default_message = "Image backend request failed"

    def __init__(
        self,
        message: str = "",
        *,
        status: int | None = None,
        detail: Any | None = None,
    ) -> None:
        super().__init__(message, data=detail)
        self.status = status


class InternalError(OperationError):
    default_message = "Internal error"
# endregion
