"""
描述: 图像生成后端接口
主要功能:
    - 定义 GenerationRequest 请求对象
    - 定义 GenerationBackend 协议 (供调度器依赖注入)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True)
class GenerationRequest:
    model: str
    prompt: str
    image_config: dict[str, Any] | None = None
    input_image_data_url: str | None = None


class GenerationBackend(Protocol):
    async def generate(self, request: GenerationRequest) -> dict[str, Any]:
        """执行一次图像生成，返回后端原始 JSON"""
        ...

    async def list_models(self) -> list[dict[str, Any]]:
        """返回支持图像输出的模型列表"""
        ...
