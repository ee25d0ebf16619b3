"""
描述: stdio 传输
主要功能:
    - 逐块读取 stdin，按换行切分为完整的 JSON-RPC 信封
    - 按到达顺序逐条分发，响应逐行写回 stdout
    - 无法解析的行返回 -32700
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any, BinaryIO, Protocol

from dotenv import load_dotenv

from image_mcp.backend.openrouter import OpenRouterBackend
from image_mcp.config import get_settings
from image_mcp.errors import ParseError
from image_mcp.sandbox.paths import ensure_root
from image_mcp.server.dispatcher import Dispatcher
from image_mcp.server.schema import jsonrpc_error
from image_mcp.utils.logger import setup_logging


logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 64 * 1024


class ChunkReader(Protocol):
    async def read(self, n: int = -1) -> bytes: ...


# region 行缓冲
class LineAccumulator:
    """字节累加器：保存未完成的行，输出完整行"""

    def __init__(self) -> None:
        self._pending = bytearray()

    @property
    def pending(self) -> bytes:
        return bytes(self._pending)

    def feed(self, chunk: bytes) -> list[bytes]:
        self._pending.extend(chunk)
        lines: list[bytes] = []
        while True:
            index = self._pending.find(b"\n")
            if index < 0:
                break
            line = bytes(self._pending[:index])
            del self._pending[: index + 1]
            lines.append(line.rstrip(b"\r"))
        return lines

    def close(self) -> bytes | None:
        """流结束时取出末尾未以换行结束的内容"""
        if not self._pending:
            return None
        line = bytes(self._pending).rstrip(b"\r")
        self._pending.clear()
        return line
# endregion


# region 传输循环
class StdioTransport:
    def __init__(self, dispatcher: Dispatcher, reader: ChunkReader, writer: BinaryIO) -> None:
        self._dispatcher = dispatcher
        self._reader = reader
        self._writer = writer
        self._lines = LineAccumulator()

    async def run(self) -> None:
        while True:
            chunk = await self._reader.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            for line in self._lines.feed(chunk):
                await self._handle_line(line)
        tail = self._lines.close()
        if tail is not None:
            await self._handle_line(tail)
        logger.info("stdin closed, stopping stdio transport")

    async def _handle_line(self, line: bytes) -> None:
        if not line.strip():
            return
        try:
            envelope = json.loads(line.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as exc:
            logger.warning("Failed to parse stdin line", extra={"error": str(exc)})
            self._write(jsonrpc_error(None, ParseError(data=str(exc)).to_error()))
            return
        response = await self._dispatcher.handle(envelope)
        if response is not None:
            self._write(response)

    def _write(self, message: dict[str, Any]) -> None:
        data = json.dumps(message, ensure_ascii=False) + "\n"
        self._writer.write(data.encode("utf-8"))
        self._writer.flush()
# endregion


async def _open_stdin() -> asyncio.StreamReader:
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
    return reader


async def serve_stdio() -> None:
    settings = get_settings()
    setup_logging(settings.logging)
    root = ensure_root(settings.output_root)
    dispatcher = Dispatcher(settings, OpenRouterBackend(settings.backend))
    logger.info("stdio transport started", extra={"output_root": str(root)})
    transport = StdioTransport(dispatcher, await _open_stdin(), sys.stdout.buffer)
    await transport.run()


def main() -> None:
    load_dotenv()
    try:
        asyncio.run(serve_stdio())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
