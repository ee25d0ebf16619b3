"""
描述: OpenRouter 图像后端客户端
主要功能:
    - 调用 Responses API 生成 / 编辑图像 (单次请求，不重试)
    - 拉取图像输出模型目录
    - 从响应中提取 base64 图像并生成响应摘要
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from image_mcp.backend.base import GenerationRequest
from image_mcp.config import BackendSettings
from image_mcp.errors import BackendError


logger = logging.getLogger(__name__)


# region 客户端
class OpenRouterBackend:
    """
    OpenRouter 后端

    功能:
        - 封装鉴权头与请求体组装
        - 非 2xx 响应统一转换为 BackendError
    """

    def __init__(self, settings: BackendSettings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._settings = settings
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._settings.timeout_seconds,
            transport=self._transport,
        )

    def _headers(self) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._settings.api_key}",
            "Content-Type": "application/json",
        }
        if self._settings.site_url:
            headers["HTTP-Referer"] = self._settings.site_url
        if self._settings.app_name:
            headers["X-Title"] = self._settings.app_name
        return headers

    @staticmethod
    def build_body(request: GenerationRequest) -> dict[str, Any]:
        content: list[dict[str, Any]] = [{"type": "input_text", "text": request.prompt}]
        if request.input_image_data_url and request.input_image_data_url.strip():
            content.append({"type": "input_image", "image_url": request.input_image_data_url.strip()})

        body: dict[str, Any] = {
            "model": request.model,
            "modalities": ["image"],
            "input": [{"role": "user", "content": content}],
        }
        if isinstance(request.image_config, dict):
            body["image_config"] = request.image_config
        return body

    async def generate(self, request: GenerationRequest) -> dict[str, Any]:
        """
        调用 Responses API

        抛出:
            BackendError: 未配置 API Key、网络错误或非 2xx 响应
        """
        if not self._settings.api_key:
            raise BackendError("OPENROUTER_API_KEY is not set")

        url = f"{self._settings.base_url.rstrip('/')}/responses"
        logger.info("Calling image backend", extra={"model": request.model, "edit": bool(request.input_image_data_url)})
        try:
            async with self._client() as client:
                response = await client.post(url, json=self.build_body(request), headers=self._headers())
        except httpx.HTTPError as exc:
            raise BackendError(f"OpenRouter request failed: {exc}") from exc

        if response.is_error:
            raise BackendError(
                f"OpenRouter error {response.status_code}: {response.text}",
                status=response.status_code,
            )
        return _json_object(response)

    async def list_models(self) -> list[dict[str, Any]]:
        url = self._settings.models_api_url
        try:
            async with self._client() as client:
                response = await client.get(url, params={"fmt": "cards", "output_modalities": "image"})
        except httpx.HTTPError as exc:
            raise BackendError(f"OpenRouter models API request failed: {exc}") from exc

        if response.is_error:
            raise BackendError(
                f"OpenRouter models API error {response.status_code}: {response.text}",
                status=response.status_code,
            )
        payload = _json_object(response)
        data = payload.get("data") or {}
        models = data.get("models") if isinstance(data, dict) else None
        return [item for item in models or [] if isinstance(item, dict)]
# endregion


# region 响应解析
def _json_object(response: httpx.Response) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError as exc:
        raise BackendError("OpenRouter returned a non-JSON response", status=response.status_code) from exc
    if not isinstance(payload, dict):
        raise BackendError("OpenRouter returned an unexpected JSON payload", status=response.status_code)
    return payload


def extract_image_base64(response: dict[str, Any]) -> str | None:
    """依次从 output[].result / output[].data / 顶层 result 中寻找图像数据"""
    output = response.get("output")
    if isinstance(output, list):
        for item in output:
            if not isinstance(item, dict):
                continue
            if item.get("type") == "image_generation_call":
                result = item.get("result")
                if isinstance(result, str) and result:
                    return result
            if item.get("type") == "image":
                data = item.get("data")
                if isinstance(data, str) and data:
                    return data

    direct = response.get("result")
    if isinstance(direct, str) and direct:
        return direct
    return None


def summarize_response(response: dict[str, Any]) -> dict[str, Any]:
    output = response.get("output")
    output_types = None
    if isinstance(output, list):
        output_types = [
            item.get("type")
            for item in output
            if isinstance(item, dict) and isinstance(item.get("type"), str)
        ][:20]
    return {
        "id": response.get("id"),
        "status": response.get("status"),
        "model": response.get("model"),
        "output_types": output_types,
        "has_output": isinstance(output, list),
    }
# endregion
