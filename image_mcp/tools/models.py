"""
Image model catalogue tool.
"""

from __future__ import annotations

from image_mcp.backend.pricing import format_models
from image_mcp.server.schema import ToolResult
from image_mcp.tools.arguments import ListImageModelsArguments
from image_mcp.tools.base import BaseTool
from image_mcp.tools.registry import ToolRegistry


@ToolRegistry.register
class ListImageModelsTool(BaseTool):
    name = "list_image_models"
    description = (
        "List OpenRouter image generation models with pricing and approximate cost per image. "
        "Fetches fresh data from the OpenRouter API."
    )
    input_schema = {
        "type": "object",
        "additionalProperties": False,
        "properties": {},
        "required": [],
    }

    async def run(self, arguments: ListImageModelsArguments) -> ToolResult:
        models = await self.context.backend.list_models()
        return ToolResult.text(format_models(models))
