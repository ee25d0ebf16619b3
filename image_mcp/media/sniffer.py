"""
描述: 图像内容嗅探
主要功能:
    - 仅依据固定偏移的魔数识别 PNG / JPEG / GIF / WEBP
    - 提供 MIME 类型与扩展名映射
"""

from __future__ import annotations

from enum import Enum


PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
JPEG_PREFIX = b"\xff\xd8\xff"
GIF_SIGNATURES = (b"GIF87a", b"GIF89a")
RIFF_TAG = b"RIFF"
WEBP_TAG = b"WEBP"

MIN_SNIFF_BYTES = 12
DEFAULT_MIME_TYPE = "image/png"


# region 图像类型
class ImageKind(str, Enum):
    PNG = "image/png"
    JPEG = "image/jpeg"
    GIF = "image/gif"
    WEBP = "image/webp"

    @property
    def mime_type(self) -> str:
        return self.value

    @property
    def extensions(self) -> tuple[str, ...]:
        return _KIND_EXTENSIONS[self]

    @property
    def primary_extension(self) -> str:
        return self.extensions[0]

    @classmethod
    def from_mime_type(cls, mime_type: str | None) -> "ImageKind | None":
        normalized = str(mime_type or "").strip().lower()
        for kind in cls:
            if kind.value == normalized:
                return kind
        return None


_KIND_EXTENSIONS: dict[ImageKind, tuple[str, ...]] = {
    ImageKind.PNG: (".png",),
    ImageKind.JPEG: (".jpg", ".jpeg"),
    ImageKind.GIF: (".gif",),
    ImageKind.WEBP: (".webp",),
}

IMAGE_EXTENSIONS: frozenset[str] = frozenset(
    ext for exts in _KIND_EXTENSIONS.values() for ext in exts
)
# endregion


def sniff(data: bytes | bytearray | memoryview | None) -> ImageKind | None:
    """按魔数识别图像类型；不足 12 字节或无匹配时返回 None"""
    if data is None or len(data) < MIN_SNIFF_BYTES:
        return None
    head = bytes(data[:MIN_SNIFF_BYTES])

    if head.startswith(PNG_SIGNATURE):
        return ImageKind.PNG
    if head.startswith(JPEG_PREFIX):
        return ImageKind.JPEG
    if head[:6] in GIF_SIGNATURES:
        return ImageKind.GIF
    if head[:4] == RIFF_TAG and head[8:12] == WEBP_TAG:
        return ImageKind.WEBP
    return None


def sniff_mime_type(data: bytes | None, default: str = DEFAULT_MIME_TYPE) -> str:
    kind = sniff(data)
    return kind.mime_type if kind else default
