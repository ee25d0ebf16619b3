"""
描述: JSON-RPC / MCP 协议分发器
主要功能:
    - 校验请求信封并路由 initialize / tools/list / tools/call
    - 工具调用前完成参数校验，失败时不触达后端
    - 在分发边界捕获所有异常并转换为错误信封
"""

from __future__ import annotations

import logging
import time
from typing import Any

import image_mcp.tools  # noqa: F401
from image_mcp.backend.base import GenerationBackend
from image_mcp.config import Settings
from image_mcp.errors import (
    GatewayError,
    InternalError,
    InvalidParamsError,
    InvalidRequestError,
    MethodNotFoundError,
    OperationError,
)
from image_mcp.server.schema import (
    DEFAULT_PROTOCOL_VERSION,
    JSONRPC_VERSION,
    jsonrpc_error,
    jsonrpc_result,
    recover_id,
)
from image_mcp.tools.arguments import parse_arguments
from image_mcp.tools.base import ToolContext
from image_mcp.tools.registry import ToolRegistry


logger = logging.getLogger(__name__)

NOTIFICATION_METHODS = frozenset({"notifications/initialized"})


class Dispatcher:
    """无状态分发器，每个信封独立处理"""

    def __init__(self, settings: Settings, backend: GenerationBackend) -> None:
        self._settings = settings
        self._context = ToolContext(settings=settings, backend=backend)

    async def handle(self, envelope: Any) -> dict[str, Any] | None:
        """
        处理单个请求信封

        返回:
            响应信封；通知类方法返回 None
        """
        request_id = recover_id(envelope)
        if (
            not isinstance(envelope, dict)
            or envelope.get("jsonrpc") != JSONRPC_VERSION
            or not isinstance(envelope.get("method"), str)
        ):
            return jsonrpc_error(request_id, InvalidRequestError().to_error())

        method = envelope["method"]
        if method in NOTIFICATION_METHODS:
            logger.debug("Notification received", extra={"method": method})
            return None

        params = envelope.get("params")
        if not isinstance(params, dict):
            params = {}

        try:
            result = await self._route(method, params, request_id)
        except GatewayError as exc:
            self._log_failure(method, params, request_id, exc)
            return jsonrpc_error(request_id, exc.to_error())
        except OSError as exc:
            self._log_failure(method, params, request_id, exc)
            error = OperationError(exc.strerror or exc.__class__.__name__)
            return jsonrpc_error(request_id, error.to_error())
        except Exception as exc:
            logger.exception(
                "Unhandled dispatch failure",
                extra={"method": method, "request_id": request_id},
            )
            return jsonrpc_error(request_id, InternalError(str(exc)).to_error())
        return jsonrpc_result(request_id, result)

    async def _route(self, method: str, params: dict[str, Any], request_id: Any) -> Any:
        if method == "initialize":
            return self._initialize(params)
        if method == "tools/list":
            return {"tools": ToolRegistry.list_tools()}
        if method == "tools/call":
            return await self._call_tool(params, request_id)
        raise MethodNotFoundError(data={"method": method})

    def _initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        protocol_version = params.get("protocolVersion")
        if not isinstance(protocol_version, str) or not protocol_version:
            protocol_version = DEFAULT_PROTOCOL_VERSION
        return {
            "protocolVersion": protocol_version,
            "serverInfo": {
                "name": self._settings.server_info.name,
                "version": self._settings.server_info.version,
            },
            "capabilities": {"tools": {}},
        }

    async def _call_tool(self, params: dict[str, Any], request_id: Any) -> Any:
        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise InvalidParamsError("name", "params.name must be a tool name")
        tool_cls = ToolRegistry.get(name)
        if tool_cls is None:
            raise MethodNotFoundError(f"Unknown tool: {name}", data={"tool": name})

        arguments = parse_arguments(name, params.get("arguments"))
        tool = tool_cls(self._context)

        started = time.perf_counter()
        result = await tool.run(arguments)
        logger.info(
            "Tool call completed",
            extra={
                "tool": name,
                "request_id": request_id,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
        return result

    @staticmethod
    def _log_failure(method: str, params: dict[str, Any], request_id: Any, exc: Exception) -> None:
        logger.warning(
            "Request failed",
            extra={
                "method": method,
                "tool": params.get("name") if method == "tools/call" else None,
                "request_id": request_id,
                "error": str(exc),
            },
        )
