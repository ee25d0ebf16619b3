"""
描述: Image MCP 全局配置加载器
主要功能:
    - 统一管理服务、后端、存储与日志配置
    - 支持 YAML 文件加载与环境变量覆盖
    - 进程启动时构建一次，之后以引用方式传入各组件
"""

from __future__ import annotations

import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


# region 配置模型
class ServerSettings(BaseModel):
    """HTTP 传输监听配置"""
    host: str = "0.0.0.0"
    port: int = 3000
    auth_token: str = ""


class ServerInfoSettings(BaseModel):
    name: str = "openrouter-image-mcp"
    version: str = "0.3.0"


class BackendSettings(BaseModel):
    """OpenRouter 图像后端配置"""
    api_key: str = ""
    base_url: str = "https://openrouter.ai/api/v1"
    default_model: str = ""
    site_url: str = ""
    app_name: str = "openrouter-image"
    models_api_url: str = "https://openrouter.ai/api/frontend/models/find"
    # None 表示不设置超时
    timeout_seconds: float | None = None


class StorageSettings(BaseModel):
    output_dir: str = "/data"


class LoggingSettings(BaseModel):
    """日志系统配置"""
    level: str = "INFO"
    format: str = "json"


class Settings(BaseModel):
    """Image MCP 配置聚合根"""
    server: ServerSettings = Field(default_factory=ServerSettings)
    server_info: ServerInfoSettings = Field(default_factory=ServerInfoSettings)
    backend: BackendSettings = Field(default_factory=BackendSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def output_root(self) -> Path:
        return Path(self.storage.output_dir).expanduser().resolve()
# endregion


# region 配置加载逻辑
def _expand_env(value: Any) -> Any:
    if isinstance(value, str):
        def replace(match: re.Match[str]) -> str:
            expr = match.group(1)
            if ":-" in expr:
                key, default = expr.split(":-", 1)
                return os.getenv(key, default)
            return os.getenv(expr, "")

        return _ENV_PATTERN.sub(replace, value)
    if isinstance(value, list):
        return [_expand_env(item) for item in value]
    if isinstance(value, dict):
        return {key: _expand_env(val) for key, val in value.items()}
    return value


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return _expand_env(data)


def _set_nested(data: dict[str, Any], keys: list[str], value: Any) -> None:
    current = data
    for key in keys[:-1]:
        current = current.setdefault(key, {})
    current[keys[-1]] = value


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    mapping = {
        "HOST": ["server", "host"],
        "PORT": ["server", "port"],
        "AUTH_TOKEN": ["server", "auth_token"],
        "OPENROUTER_API_KEY": ["backend", "api_key"],
        "OPENROUTER_BASE_URL": ["backend", "base_url"],
        "OPENROUTER_IMAGE_MODEL": ["backend", "default_model"],
        "OPENROUTER_SITE_URL": ["backend", "site_url"],
        "OPENROUTER_APP_NAME": ["backend", "app_name"],
        "OPENROUTER_MODELS_API": ["backend", "models_api_url"],
        "OPENROUTER_TIMEOUT_SECONDS": ["backend", "timeout_seconds"],
        "OUTPUT_DIR": ["storage", "output_dir"],
        "LOG_LEVEL": ["logging", "level"],
        "LOG_FORMAT": ["logging", "format"],
    }
    for env_key, path in mapping.items():
        env_value = os.getenv(env_key)
        if env_value is not None and env_value != "":
            _set_nested(data, path, env_value)
    return data


def load_settings(config_path: str | None = None) -> Settings:
    path = Path(config_path or os.getenv("CONFIG_PATH", "config.yaml"))
    data = _load_yaml(path)
    data = _apply_env_overrides(data)
    return Settings.model_validate(data)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """获取单例配置对象（仅供入口脚本使用）"""
    return load_settings()
# endregion
