"""
描述: 输出目录索引
主要功能:
    - 在沙箱根目录内遍历文件 (不跟随软链接)
    - 按图像扩展名过滤、排序、截断
    - 渲染为文本列表
"""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from image_mcp.media.sniffer import IMAGE_EXTENSIONS
from image_mcp.sandbox.paths import assert_not_symlink, resolve_path


logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 200
MIN_LIMIT = 1
MAX_LIMIT = 1000
DEFAULT_SORT = "mtime_desc"


# region 数据模型
@dataclass(frozen=True)
class FileRecord:
    path: str
    size_bytes: int
    modified_at_ms: float


@dataclass
class ListingResult:
    records: list[FileRecord] = field(default_factory=list)
    total: int = 0
    limit: int = DEFAULT_LIMIT

    @property
    def truncated(self) -> bool:
        return self.total > len(self.records)
# endregion


_SORTERS: dict[str, tuple[Callable[[FileRecord], Any], bool]] = {
    "mtime_desc": (lambda r: r.modified_at_ms, True),
    "mtime_asc": (lambda r: r.modified_at_ms, False),
    "size_desc": (lambda r: r.size_bytes, True),
    "size_asc": (lambda r: r.size_bytes, False),
    "name_asc": (lambda r: r.path, False),
    "name_desc": (lambda r: r.path, True),
}

SORT_MODES: tuple[str, ...] = tuple(_SORTERS)


def clamp_limit(limit: Any) -> int:
    """将 limit 限制在 [1, 1000]；缺省或非数值时使用 200"""
    if limit is None or isinstance(limit, bool):
        return DEFAULT_LIMIT
    try:
        value = int(limit)
    except (TypeError, ValueError):
        return DEFAULT_LIMIT
    return max(MIN_LIMIT, min(MAX_LIMIT, value))


def _is_image_name(name: str) -> bool:
    return os.path.splitext(name)[1].lower() in IMAGE_EXTENSIONS


def _walk(root: Path, directory: Path, recursive: bool, include_non_images: bool, out: list[FileRecord]) -> None:
    try:
        with os.scandir(directory) as iterator:
            entries = sorted(iterator, key=lambda e: e.name)
    except OSError as exc:
        logger.debug("Skipping unreadable directory", extra={"error": str(exc)})
        return

    for entry in entries:
        try:
            st = entry.stat(follow_symlinks=False)
        except OSError:
            # 遍历期间被删除等情况，跳过该条目
            continue
        if stat.S_ISLNK(st.st_mode):
            continue

        abs_path = Path(entry.path)
        if stat.S_ISDIR(st.st_mode):
            if recursive:
                _walk(root, abs_path, recursive, include_non_images, out)
            continue
        if not stat.S_ISREG(st.st_mode):
            continue
        if not include_non_images and not _is_image_name(entry.name):
            continue

        out.append(
            FileRecord(
                path=abs_path.relative_to(root).as_posix(),
                size_bytes=st.st_size,
                modified_at_ms=st.st_mtime_ns / 1_000_000,
            )
        )


def list_files(
    root: str | Path,
    *,
    prefix: str = "",
    recursive: bool = True,
    limit: Any = DEFAULT_LIMIT,
    include_non_images: bool = False,
    sort: str = DEFAULT_SORT,
) -> ListingResult:
    """
    列出沙箱根目录下的文件

    参数:
        root: 沙箱根目录
        prefix: 根目录下的子目录 (不存在时创建)
        recursive: 是否递归子目录
        limit: 返回条数上限，限制在 [1, 1000]
        include_non_images: 是否包含非图像扩展名的文件
        sort: 排序模式，未知模式保持遍历顺序

    返回:
        ListingResult
    """
    root_path = Path(os.path.abspath(os.fspath(root)))
    base = resolve_path(root_path, prefix)
    base.absolute.mkdir(parents=True, exist_ok=True)
    assert_not_symlink(base)

    records: list[FileRecord] = []
    _walk(root_path, base.absolute, recursive, include_non_images, records)

    sorter = _SORTERS.get(sort)
    if sorter is not None:
        key, reverse = sorter
        records.sort(key=key, reverse=reverse)

    effective_limit = clamp_limit(limit)
    return ListingResult(records=records[:effective_limit], total=len(records), limit=effective_limit)


def render_listing(result: ListingResult, root: str | Path) -> str:
    shown = len(result.records)
    count = f"{shown}"
    if result.truncated:
        count += f" (showing first {shown} of {result.total})"
    lines = [
        "# Output images",
        "",
        f"base: {root}",
        f"count: {count}",
        "",
        "| path | bytes | modified |",
        "|---|---:|---|",
    ]
    for record in result.records:
        modified = datetime.fromtimestamp(record.modified_at_ms / 1000, tz=timezone.utc)
        lines.append(f"| {record.path} | {record.size_bytes} | {modified.isoformat(timespec='milliseconds')} |")
    return "\n".join(lines) + "\n"
