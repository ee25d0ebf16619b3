"""
描述: stdio 传输运行脚本
主要功能:
    - 从仓库根目录读取 config.yaml 与 .env
    - stdout 仅用于协议输出，日志写入 stderr
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

from image_mcp.server.stdio import main


if __name__ == "__main__":
    main()
