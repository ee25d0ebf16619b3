"""HTTP service entrypoint."""

from __future__ import annotations

from dotenv import load_dotenv

from image_mcp.config import get_settings
from image_mcp.server.app_factory import create_app
from image_mcp.utils.logger import setup_logging


load_dotenv()
settings = get_settings()
setup_logging(settings.logging)
app = create_app(settings)
