"""
Output directory tools.
"""

from __future__ import annotations

from typing import Any

from image_mcp.media.payload import ImagePayload
from image_mcp.sandbox.paths import assert_not_symlink, resolve_path
from image_mcp.server.schema import ImageContent, TextContent, ToolResult
from image_mcp.storage.indexer import DEFAULT_LIMIT, MAX_LIMIT, MIN_LIMIT, SORT_MODES, list_files, render_listing
from image_mcp.tools.arguments import ListOutputImagesArguments, ReadOutputImageArguments
from image_mcp.tools.base import BaseTool
from image_mcp.tools.registry import ToolRegistry


@ToolRegistry.register
class ListOutputImagesTool(BaseTool):
    name = "list_output_images"
    description = "List image files currently stored under OUTPUT_DIR."
    input_schema: dict[str, Any] = {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "prefix": {"type": "string", "description": "Optional relative subfolder under OUTPUT_DIR (e.g. tests/)."},
            "recursive": {"type": "boolean", "default": True},
            "limit": {"type": "integer", "minimum": MIN_LIMIT, "maximum": MAX_LIMIT, "default": DEFAULT_LIMIT},
            "include_non_images": {"type": "boolean", "default": False},
            "sort": {"type": "string", "enum": list(SORT_MODES), "default": "mtime_desc"},
        },
        "required": [],
    }

    async def run(self, arguments: ListOutputImagesArguments) -> ToolResult:
        root = self.context.output_root
        result = list_files(
            root,
            prefix=arguments.prefix,
            recursive=arguments.recursive,
            limit=arguments.limit,
            include_non_images=arguments.include_non_images,
            sort=arguments.sort,
        )
        return ToolResult.text(render_listing(result, root))


@ToolRegistry.register
class ReadOutputImageTool(BaseTool):
    name = "read_output_image"
    description = "Read an image from OUTPUT_DIR and return it as MCP image content."
    input_schema: dict[str, Any] = {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "path": {"type": "string", "minLength": 1, "description": "Relative path under OUTPUT_DIR to the image file."},
            "mime_type": {
                "type": "string",
                "description": "Override MIME type for MCP response (default detected automatically).",
            },
            "return_base64": {
                "type": "boolean",
                "default": True,
                "description": "If false, do not include the base64 image in the MCP response.",
            },
        },
        "required": ["path"],
    }

    async def run(self, arguments: ReadOutputImageArguments) -> ToolResult:
        target = resolve_path(self.context.output_root, arguments.path)
        assert_not_symlink(target)
        payload = ImagePayload.from_bytes(target.absolute.read_bytes())
        detected = payload.detected_mime_type
        mime_type = arguments.mime_type or detected

        lines = [
            f"path: {arguments.path}",
            f"abs_path: {target.absolute}",
            f"bytes: {payload.size}",
        ]
        if mime_type != detected:
            lines.append(f"mime_type: {mime_type} (requested; detected: {detected})")
        else:
            lines.append(f"mime_type: {mime_type}")
        lines.append(f"base64_in_response: {'yes' if arguments.return_base64 else 'no'}")

        content: list[Any] = [TextContent(text="\n".join(lines))]
        if arguments.return_base64:
            content.append(ImageContent(data=payload.to_base64(), mimeType=mime_type))
        return ToolResult(content=content)
