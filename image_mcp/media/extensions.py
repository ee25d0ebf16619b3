"""Output filename extension reconciliation against detected image content."""

from __future__ import annotations

import posixpath
from typing import NamedTuple

from image_mcp.media.sniffer import IMAGE_EXTENSIONS, ImageKind


class NormalizedPath(NamedTuple):
    path: str
    changed: bool


def normalize_extension(requested_path: str, kind: ImageKind | None) -> NormalizedPath:
    """
    让输出文件扩展名与实际图像内容一致

    规则 (按顺序，首个命中生效):
        1. 类型未知 -> 不变
        2. 无扩展名 -> 追加主扩展名
        3. 扩展名已属于该类型 -> 不变
        4. 扩展名是其他图像扩展名 -> 替换为主扩展名
        5. 其他扩展名 (如 .txt) -> 不变
    """
    original = str(requested_path or "")
    if kind is None:
        return NormalizedPath(original, False)

    ext = posixpath.splitext(original)[1]
    ext_lower = ext.lower()

    if not ext_lower:
        return NormalizedPath(f"{original}{kind.primary_extension}", True)
    if ext_lower in kind.extensions:
        return NormalizedPath(original, False)
    if ext_lower in IMAGE_EXTENSIONS:
        return NormalizedPath(f"{original[: -len(ext)]}{kind.primary_extension}", True)
    return NormalizedPath(original, False)
