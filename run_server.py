"""
描述: HTTP 传输运行脚本
主要功能:
    - 使用 uvicorn 启动 ASGI 服务
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent
sys.path.insert(0, str(BASE_DIR))

os.environ.setdefault("CONFIG_PATH", str(BASE_DIR / "config.yaml"))

from dotenv import load_dotenv

load_dotenv(BASE_DIR / ".env")

import uvicorn

from image_mcp.config import get_settings


def main() -> None:
    settings = get_settings()
    print(f"Starting image MCP HTTP transport on http://{settings.server.host}:{settings.server.port}/mcp")
    print("Press Ctrl+C to stop")
    uvicorn.run("image_mcp.main:app", host=settings.server.host, port=settings.server.port, log_level="info")


if __name__ == "__main__":
    main()
