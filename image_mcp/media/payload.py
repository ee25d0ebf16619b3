"""
描述: 图像载荷
主要功能:
    - 解析后端返回的 base64 / data URL
    - 基于字节内容确定 MIME 类型
"""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass

from image_mcp.errors import BackendError
from image_mcp.media.sniffer import DEFAULT_MIME_TYPE, ImageKind, sniff


_DATA_URL_PATTERN = re.compile(r"^data:([^;]+);base64,(.*)$", re.DOTALL)


@dataclass(frozen=True)
class ImagePayload:
    """图像字节与检测到的类型 (类型仅由字节内容决定)"""
    data: bytes
    kind: ImageKind | None

    @classmethod
    def from_bytes(cls, data: bytes) -> "ImagePayload":
        return cls(data=data, kind=sniff(data))

    @property
    def detected_mime_type(self) -> str:
        return self.kind.mime_type if self.kind else DEFAULT_MIME_TYPE

    @property
    def size(self) -> int:
        return len(self.data)

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_url(self) -> str:
        return f"data:{self.detected_mime_type};base64,{self.to_base64()}"


def strip_data_url_prefix(value: str) -> tuple[str | None, str]:
    """拆分 data URL，返回 (声明的 MIME, base64 正文)；非 data URL 原样返回"""
    text = str(value or "")
    match = _DATA_URL_PATTERN.match(text)
    if match:
        return match.group(1), match.group(2)
    return None, text


def decode_image_base64(value: str) -> ImagePayload:
    """
    解码后端返回的图像数据

    抛出:
        BackendError: 内容无法按 base64 解码或为空
    """
    _, encoded = strip_data_url_prefix(value)
    try:
        compact = "".join(encoded.split()).rstrip("=")
        # 后端可能省略末尾的 = 填充
        compact += "=" * (-len(compact) % 4)
        data = base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise BackendError(f"Backend returned undecodable image data: {exc}") from exc
    if not data:
        raise BackendError("Backend returned empty image data")
    return ImagePayload.from_bytes(data)
