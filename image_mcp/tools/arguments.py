"""
描述: 工具参数模型
主要功能:
    - 每个工具一个参数模型，按 tool 字段组成判别联合
    - 校验失败统一转换为 InvalidParamsError (带出错字段名)
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from image_mcp.errors import InvalidParamsError


def _require_text(value: str) -> str:
    text = value.strip()
    if not text:
        raise ValueError("must be a non-empty string")
    return text


def _optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    text = value.strip()
    return text or None


# region 参数模型
class _Arguments(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class GenerateImageArguments(_Arguments):
    tool: Literal["generate_image"] = "generate_image"
    prompt: str
    model: Optional[str] = None
    image_config: Optional[dict[str, Any]] = None
    output_path: Optional[str] = None
    mime_type: Optional[str] = None
    return_base64: bool = True

    @field_validator("prompt")
    @classmethod
    def check_prompt(cls, value: str) -> str:
        return _require_text(value)

    @field_validator("model", "output_path", "mime_type")
    @classmethod
    def strip_optional(cls, value: Optional[str]) -> Optional[str]:
        return _optional_text(value)


class EditImageArguments(GenerateImageArguments):
    tool: Literal["edit_image"] = "edit_image"  # type: ignore[assignment]
    input_image_path: str

    @field_validator("input_image_path")
    @classmethod
    def check_input_image_path(cls, value: str) -> str:
        return _require_text(value)


class ListImageModelsArguments(_Arguments):
    tool: Literal["list_image_models"] = "list_image_models"


class ListOutputImagesArguments(_Arguments):
    tool: Literal["list_output_images"] = "list_output_images"
    prefix: str = ""
    recursive: bool = True
    # 非数值按默认值处理，由 indexer 负责夹取
    limit: Any = None
    include_non_images: bool = False
    sort: str = "mtime_desc"


class ReadOutputImageArguments(_Arguments):
    tool: Literal["read_output_image"] = "read_output_image"
    path: str
    mime_type: Optional[str] = None
    return_base64: bool = True

    @field_validator("path")
    @classmethod
    def check_path(cls, value: str) -> str:
        return _require_text(value)

    @field_validator("mime_type")
    @classmethod
    def strip_mime_type(cls, value: Optional[str]) -> Optional[str]:
        return _optional_text(value)


ToolArguments = Annotated[
    Union[
        GenerateImageArguments,
        EditImageArguments,
        ListImageModelsArguments,
        ListOutputImagesArguments,
        ReadOutputImageArguments,
    ],
    Field(discriminator="tool"),
]
# endregion


_ADAPTER: TypeAdapter[Any] = TypeAdapter(ToolArguments)

# prompt 必须先于其他字段报错
_FIELD_PRIORITY = ("prompt", "input_image_path", "path")


def _first_error_field(exc: ValidationError) -> tuple[str, str]:
    errors = exc.errors()
    fields = []
    for error in errors:
        loc = [part for part in error.get("loc", ()) if isinstance(part, str)]
        # 判别联合的 loc 形如 (tool_name, field, ...)
        name = loc[1] if len(loc) > 1 else (loc[0] if loc else "arguments")
        fields.append((name, str(error.get("msg") or "")))
    for preferred in _FIELD_PRIORITY:
        for name, message in fields:
            if name == preferred:
                return name, message
    return fields[0] if fields else ("arguments", "")


def parse_arguments(tool_name: str, raw: Any) -> Any:
    """
    将原始 arguments 对象校验为对应工具的参数模型

    抛出:
        InvalidParamsError: arguments 不是对象或字段校验失败
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise InvalidParamsError("arguments", "arguments must be an object")
    payload = {**raw, "tool": tool_name}
    try:
        return _ADAPTER.validate_python(payload)
    except ValidationError as exc:
        field, message = _first_error_field(exc)
        raise InvalidParamsError(field, message or None) from exc
