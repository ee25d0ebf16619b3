"""
描述: JSON-RPC 与 MCP 工具结果数据模型
主要功能:
    - 定义工具结果内容块 (TextContent / ImageContent)
    - 定义工具结果 (ToolResult)
    - 构建 JSON-RPC 成功 / 错误响应信封
"""

from __future__ import annotations

import math
from typing import Any, Literal, Union

from pydantic import BaseModel, Field


JSONRPC_VERSION = "2.0"
DEFAULT_PROTOCOL_VERSION = "2024-11-05"

RequestId = Union[str, int, float, None]


# region 工具结果模型
class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ImageContent(BaseModel):
    type: Literal["image"] = "image"
    data: str
    mimeType: str


class ToolResult(BaseModel):
    content: list[Union[TextContent, ImageContent]] = Field(default_factory=list)
    isError: bool = False

    @classmethod
    def text(cls, text: str) -> "ToolResult":
        return cls(content=[TextContent(text=text)])
# endregion


# region 响应信封
def recover_id(envelope: Any) -> RequestId:
    """仅在 id 类型合法时回显，否则为 None"""
    if not isinstance(envelope, dict):
        return None
    value = envelope.get("id")
    if isinstance(value, bool):
        return None
    if isinstance(value, (str, int)):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return value
    return None


def jsonrpc_result(request_id: RequestId, result: Any) -> dict[str, Any]:
    if isinstance(result, BaseModel):
        result = result.model_dump()
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def jsonrpc_error(request_id: RequestId, error: dict[str, Any]) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error}
# endregion
