"""
描述: MCP 工具基类定义
主要功能:
    - 定义 BaseTool 抽象基类
    - 定义 ToolContext 上下文对象
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from image_mcp.backend.base import GenerationBackend
from image_mcp.config import Settings
from image_mcp.server.schema import ToolResult


# region 工具上下文与基类
@dataclass
class ToolContext:
    """工具执行上下文 (依赖注入)"""
    settings: Settings
    backend: GenerationBackend

    @property
    def output_root(self) -> Path:
        return self.settings.output_root


class BaseTool(ABC):
    """MCP 工具抽象基类"""
    name: str = ""
    description: str = ""
    input_schema: dict[str, Any] = {}

    def __init__(self, context: ToolContext) -> None:
        self.context = context
        if not self.name:
            raise ValueError(f"{self.__class__.__name__} must define 'name' attribute")

    @abstractmethod
    async def run(self, arguments: Any) -> ToolResult:
        """
        执行工具逻辑

        参数:
            arguments: 已校验的参数模型 (ToolArguments 中对应的变体)

        返回:
            ToolResult
        """
        raise NotImplementedError

    @classmethod
    def to_descriptor(cls) -> dict[str, Any]:
        """返回工具描述 (tools/list)"""
        return {
            "name": cls.name,
            "description": cls.description,
            "inputSchema": cls.input_schema,
        }
# endregion
