"""
描述: 输出目录沙箱
主要功能:
    - 将调用方提供的相对路径解析到配置的根目录下
    - 拒绝越界路径 (.. / 绝对路径 / 中间目录软链接)
    - 拒绝对软链接本身的读写与遍历
"""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path

from image_mcp.errors import PathEscapeError, SymlinkRefusedError


logger = logging.getLogger(__name__)


# region 沙箱路径
@dataclass(frozen=True)
class SandboxPath:
    """已通过沙箱校验的路径 (仅由 resolve_path 构造)"""
    relative: str
    absolute: Path

    def __str__(self) -> str:
        return str(self.absolute)


def _is_within(root: str, candidate: str) -> bool:
    # 使用 root + 分隔符 做前缀比较，避免 /data2 被误判为 /data 的子路径
    return candidate == root or candidate.startswith(root.rstrip(os.sep) + os.sep)


def resolve_path(root: str | Path, relative: str | None) -> SandboxPath:
    """
    解析沙箱内路径

    参数:
        root: 沙箱根目录 (绝对路径)
        relative: 调用方提供的相对路径，前导分隔符会被去除

    返回:
        SandboxPath

    抛出:
        PathEscapeError: 解析结果不在根目录内
    """
    root_abs = os.path.abspath(os.fspath(root))
    cleaned = str(relative or "").lstrip("/\\")
    target = os.path.normpath(os.path.join(root_abs, cleaned))

    if not _is_within(root_abs, target):
        logger.warning("Path escape attempt rejected", extra={"requested_path": cleaned})
        raise PathEscapeError()

    # 中间目录可能是指向根目录外的软链接
    real_root = os.path.realpath(root_abs)
    real_target = os.path.realpath(target)
    if not _is_within(real_root, real_target):
        logger.warning("Symlinked path escape rejected", extra={"requested_path": cleaned})
        raise PathEscapeError()

    return SandboxPath(relative=cleaned, absolute=Path(target))


def assert_not_symlink(path: str | Path | SandboxPath, *, missing_ok: bool = False) -> os.stat_result | None:
    """
    使用 lstat 检查目标本身不是软链接

    参数:
        path: 目标路径
        missing_ok: 目标不存在时返回 None 而不是抛出 FileNotFoundError (写入场景)
    """
    target = path.absolute if isinstance(path, SandboxPath) else Path(path)
    try:
        st = os.lstat(target)
    except FileNotFoundError:
        if missing_ok:
            return None
        raise
    if stat.S_ISLNK(st.st_mode):
        raise SymlinkRefusedError()
    return st


def ensure_root(root: str | Path) -> Path:
    """启动时创建沙箱根目录 (如不存在)"""
    root_path = Path(root)
    root_path.mkdir(parents=True, exist_ok=True)
    return root_path.resolve()
# endregion
