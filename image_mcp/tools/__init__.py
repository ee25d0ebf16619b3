"""
描述: MCP 工具注册入口。
主要功能:
    - 导入并注册 images、models、library 工具
    - 注册顺序即 tools/list 的返回顺序
"""

from image_mcp.tools import images, models, library  # noqa: F401
