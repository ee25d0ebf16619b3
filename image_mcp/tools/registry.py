"""
描述: 图像工具注册中心
主要功能:
    - 以类装饰器登记 generate_image / edit_image 等五个图像工具
    - 供分发器按 params.name 查找工具类
    - 按登记顺序生成 tools/list 的工具描述
"""

from __future__ import annotations

import logging
from typing import Any, Type

from image_mcp.tools.base import BaseTool


logger = logging.getLogger(__name__)


# region 工具注册中心
class ToolRegistry:
    """进程级图像工具表 (name -> 工具类)，仅在导入 image_mcp.tools 时写入"""
    _tools: dict[str, Type[BaseTool]] = {}

    @classmethod
    def register(cls, tool_cls: Type[BaseTool]) -> Type[BaseTool]:
        """登记工具类；同名工具以后登记者为准"""
        tool_name = getattr(tool_cls, "name", "")
        if not tool_name:
            logger.warning("Image tool %s declares no name, not registered", tool_cls.__name__)
            return tool_cls
        if tool_name in cls._tools:
            logger.warning("Image tool %s registered twice, replacing", tool_name)
        cls._tools[tool_name] = tool_cls
        return tool_cls

    @classmethod
    def get(cls, name: str) -> Type[BaseTool] | None:
        """tools/call 查找；未知工具返回 None，由分发器转换为 -32601"""
        return cls._tools.get(name)

    @classmethod
    def list_tools(cls) -> list[dict[str, Any]]:
        """tools/list 结果：name / description / inputSchema"""
        return [tool_cls.to_descriptor() for tool_cls in cls._tools.values()]
# endregion
