"""
描述: 图像生成与编辑工具
主要功能:
    - generate_image: 文生图
    - edit_image: 以沙箱内已有图像为输入的图生图
    - 按检测到的真实类型修正输出文件扩展名后写入沙箱
"""

from __future__ import annotations

import logging
from typing import Any

from image_mcp.backend.base import GenerationRequest
from image_mcp.backend.openrouter import extract_image_base64, summarize_response
from image_mcp.errors import BackendError, InvalidParamsError
from image_mcp.media.extensions import normalize_extension
from image_mcp.media.payload import ImagePayload, decode_image_base64
from image_mcp.sandbox.paths import SandboxPath, assert_not_symlink, resolve_path
from image_mcp.server.schema import ImageContent, TextContent, ToolResult
from image_mcp.tools.arguments import EditImageArguments, GenerateImageArguments
from image_mcp.tools.base import BaseTool
from image_mcp.tools.registry import ToolRegistry


logger = logging.getLogger(__name__)

_RETURN_BASE64_SCHEMA = {
    "type": "boolean",
    "description": "If false, do not include the base64 image in the MCP response (prevents huge JSON payloads).",
    "default": True,
}


def _generation_schema(*, edit: bool) -> dict[str, Any]:
    properties: dict[str, Any] = {"prompt": {"type": "string", "minLength": 1}}
    if edit:
        properties["input_image_path"] = {
            "type": "string",
            "minLength": 1,
            "description": "Relative path under OUTPUT_DIR for the input image.",
        }
    properties.update(
        {
            "model": {
                "type": "string",
                "minLength": 1,
                "description": "OpenRouter model id. Defaults to OPENROUTER_IMAGE_MODEL.",
            },
            "image_config": {
                "type": "object",
                "description": "Provider-specific image configuration passed through to OpenRouter.",
            },
            "output_path": {
                "type": "string",
                "description": "Relative path under OUTPUT_DIR to save the image (e.g. assets/banner.png).",
            },
            "mime_type": {
                "type": "string",
                "description": "MIME type for the returned MCP image content (default detected automatically).",
            },
            "return_base64": dict(_RETURN_BASE64_SCHEMA),
        }
    )
    return {
        "type": "object",
        "additionalProperties": False,
        "properties": properties,
        "required": ["prompt", "input_image_path"] if edit else ["prompt"],
    }


# region 生成流程
class _ImageGenerationTool(BaseTool):
    """generate_image / edit_image 共用流程"""

    def _resolve_model(self, arguments: GenerateImageArguments) -> str:
        model = arguments.model or self.context.settings.backend.default_model.strip()
        if not model:
            raise InvalidParamsError("model", "Provide arguments.model or set OPENROUTER_IMAGE_MODEL")
        return model

    async def _input_image_data_url(self, arguments: GenerateImageArguments) -> str | None:
        return None

    def _save(self, payload: ImagePayload, requested_path: str) -> tuple[SandboxPath, bool]:
        normalized = normalize_extension(requested_path, payload.kind)
        target = resolve_path(self.context.output_root, normalized.path)
        target.absolute.parent.mkdir(parents=True, exist_ok=True)
        assert_not_symlink(target, missing_ok=True)
        target.absolute.write_bytes(payload.data)
        return target, normalized.changed

    async def run(self, arguments: GenerateImageArguments) -> ToolResult:
        model = self._resolve_model(arguments)
        if arguments.output_path:
            # 越界的输出路径在调用后端前即拒绝
            resolve_path(self.context.output_root, arguments.output_path)
        input_data_url = await self._input_image_data_url(arguments)

        response = await self.context.backend.generate(
            GenerationRequest(
                model=model,
                prompt=arguments.prompt,
                image_config=arguments.image_config,
                input_image_data_url=input_data_url,
            )
        )

        encoded = extract_image_base64(response)
        if not encoded:
            raise BackendError(
                "No image data returned from backend",
                detail={"response": summarize_response(response)},
            )
        payload = decode_image_base64(encoded)
        detected = payload.detected_mime_type
        mime_type = arguments.mime_type or detected

        lines = [f"tool: {self.name}", f"model: {model}"]
        if isinstance(arguments, EditImageArguments):
            lines.append(f"input_image_path: {arguments.input_image_path}")

        if arguments.output_path:
            target, changed = self._save(payload, arguments.output_path)
            lines.append(f"output_path: {target.relative}")
            if changed:
                lines.append(f"output_path_fixed_from: {arguments.output_path}")
            lines.append(f"saved_to: {target.absolute}")
            logger.info(
                "Image saved",
                extra={"tool": self.name, "output_path": target.relative, "bytes": payload.size},
            )
        else:
            lines.append("saved_to: (not saved)")

        if mime_type != detected:
            lines.append(f"mime_type: {mime_type} (requested; detected: {detected})")
        else:
            lines.append(f"mime_type: {mime_type}")
        lines.append(f"base64_in_response: {'yes' if arguments.return_base64 else 'no'}")

        content: list[Any] = [TextContent(text="\n".join(lines))]
        if arguments.return_base64:
            content.append(ImageContent(data=payload.to_base64(), mimeType=mime_type))
        return ToolResult(content=content)
# endregion


# region 工具
@ToolRegistry.register
class GenerateImageTool(_ImageGenerationTool):
    name = "generate_image"
    description = "Generate an image via OpenRouter (Responses API) and optionally save it under OUTPUT_DIR."
    input_schema = _generation_schema(edit=False)


@ToolRegistry.register
class EditImageTool(_ImageGenerationTool):
    name = "edit_image"
    description = (
        "Edit / transform an existing image under OUTPUT_DIR using OpenRouter "
        "(image-to-image via Responses API)."
    )
    input_schema = _generation_schema(edit=True)

    async def _input_image_data_url(self, arguments: EditImageArguments) -> str | None:  # type: ignore[override]
        source = resolve_path(self.context.output_root, arguments.input_image_path)
        assert_not_symlink(source)
        return ImagePayload.from_bytes(source.absolute.read_bytes()).to_data_url()
# endregion
