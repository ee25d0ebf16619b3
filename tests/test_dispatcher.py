from __future__ import annotations

import asyncio
import base64
import os
from pathlib import Path
from typing import Any

from image_mcp.backend.base import GenerationRequest
from image_mcp.config import Settings
from image_mcp.errors import BackendError
from image_mcp.server.dispatcher import Dispatcher


PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 24
JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 24


class FakeBackend:
    def __init__(self, image: bytes | None = PNG, models: list[dict[str, Any]] | None = None) -> None:
        self.image = image
        self.models = models or []
        self.calls: list[GenerationRequest] = []

    async def generate(self, request: GenerationRequest) -> dict[str, Any]:
        self.calls.append(request)
        if self.image is None:
            return {"id": "resp_1", "status": "completed", "output": [{"type": "message"}]}
        encoded = base64.b64encode(self.image).decode("ascii")
        return {"output": [{"type": "image_generation_call", "result": encoded}]}

    async def list_models(self) -> list[dict[str, Any]]:
        return self.models


class FailingBackend(FakeBackend):
    async def generate(self, request: GenerationRequest) -> dict[str, Any]:
        raise BackendError("OpenRouter error 502: bad gateway", status=502)


class ExplodingBackend(FakeBackend):
    async def generate(self, request: GenerationRequest) -> dict[str, Any]:
        raise RuntimeError("boom")


def _settings(root: Path, default_model: str = "") -> Settings:
    settings = Settings()
    settings.storage.output_dir = str(root)
    settings.backend.default_model = default_model
    return settings


def _call(dispatcher: Dispatcher, name: str, arguments: Any, request_id: Any = 1) -> dict[str, Any] | None:
    envelope = {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": "tools/call",
        "params": {"name": name, "arguments": arguments},
    }
    return asyncio.run(dispatcher.handle(envelope))


def _text(response: dict[str, Any]) -> str:
    return response["result"]["content"][0]["text"]


def test_initialize_echoes_protocol_version(tmp_path: Path) -> None:
    dispatcher = Dispatcher(_settings(tmp_path), FakeBackend())
    response = asyncio.run(
        dispatcher.handle(
            {"jsonrpc": "2.0", "id": "init", "method": "initialize", "params": {"protocolVersion": "2025-03-26"}}
        )
    )
    assert response is not None
    assert response["id"] == "init"
    assert response["result"]["protocolVersion"] == "2025-03-26"
    assert response["result"]["serverInfo"] == {"name": "openrouter-image-mcp", "version": "0.3.0"}
    assert response["result"]["capabilities"] == {"tools": {}}

    fallback = asyncio.run(dispatcher.handle({"jsonrpc": "2.0", "id": 2, "method": "initialize"}))
    assert fallback is not None
    assert fallback["result"]["protocolVersion"] == "2024-11-05"


def test_tools_list_exposes_five_tools(tmp_path: Path) -> None:
    dispatcher = Dispatcher(_settings(tmp_path), FakeBackend())
    response = asyncio.run(dispatcher.handle({"jsonrpc": "2.0", "id": 1, "method": "tools/list"}))
    assert response is not None
    tools = {tool["name"]: tool for tool in response["result"]["tools"]}
    assert set(tools) == {
        "generate_image",
        "edit_image",
        "list_image_models",
        "list_output_images",
        "read_output_image",
    }
    assert tools["edit_image"]["inputSchema"]["required"] == ["prompt", "input_image_path"]
    assert tools["read_output_image"]["inputSchema"]["required"] == ["path"]


def test_notification_produces_no_response(tmp_path: Path) -> None:
    dispatcher = Dispatcher(_settings(tmp_path), FakeBackend())
    assert asyncio.run(dispatcher.handle({"jsonrpc": "2.0", "method": "notifications/initialized"})) is None
    assert asyncio.run(dispatcher.handle({"jsonrpc": "2.0", "id": 9, "method": "notifications/initialized"})) is None


def test_invalid_envelopes(tmp_path: Path) -> None:
    dispatcher = Dispatcher(_settings(tmp_path), FakeBackend())
    bad_version = asyncio.run(dispatcher.handle({"jsonrpc": "1.0", "id": 3, "method": "tools/list"}))
    assert bad_version == {"jsonrpc": "2.0", "id": 3, "error": {"code": -32600, "message": "Invalid Request"}}

    bad_method = asyncio.run(dispatcher.handle({"jsonrpc": "2.0", "id": {"x": 1}, "method": 5}))
    assert bad_method is not None
    assert bad_method["id"] is None
    assert bad_method["error"]["code"] == -32600

    not_object = asyncio.run(dispatcher.handle([1, 2]))
    assert not_object is not None
    assert not_object["error"]["code"] == -32600


def test_float_id_is_echoed(tmp_path: Path) -> None:
    dispatcher = Dispatcher(_settings(tmp_path), FakeBackend())
    response = asyncio.run(dispatcher.handle({"jsonrpc": "2.0", "id": 1.5, "method": "tools/list"}))
    assert response is not None
    assert response["id"] == 1.5

    invalid = asyncio.run(dispatcher.handle({"jsonrpc": "1.0", "id": 2.5, "method": "tools/list"}))
    assert invalid is not None
    assert invalid["id"] == 2.5
    assert invalid["error"]["code"] == -32600

    flag = asyncio.run(dispatcher.handle({"jsonrpc": "2.0", "id": True, "method": "tools/list"}))
    assert flag is not None
    assert flag["id"] is None


def test_unknown_method_and_tool(tmp_path: Path) -> None:
    dispatcher = Dispatcher(_settings(tmp_path), FakeBackend())
    response = asyncio.run(dispatcher.handle({"jsonrpc": "2.0", "id": 1, "method": "resources/list"}))
    assert response is not None
    assert response["error"]["code"] == -32601

    response = _call(dispatcher, "delete_everything", {})
    assert response is not None
    assert response["error"]["code"] == -32601


def test_empty_prompt_is_invalid_params_without_backend_call(tmp_path: Path) -> None:
    backend = FakeBackend()
    dispatcher = Dispatcher(_settings(tmp_path), backend)
    response = _call(dispatcher, "generate_image", {"prompt": "", "model": "m"})
    assert response is not None
    assert response["error"]["code"] == -32602
    assert response["error"]["data"]["field"] == "prompt"
    assert backend.calls == []


def test_missing_model_is_invalid_params(tmp_path: Path) -> None:
    backend = FakeBackend()
    dispatcher = Dispatcher(_settings(tmp_path), backend)
    response = _call(dispatcher, "generate_image", {"prompt": "a cat"})
    assert response is not None
    assert response["error"]["code"] == -32602
    assert response["error"]["data"]["field"] == "model"
    assert "OPENROUTER_IMAGE_MODEL" in response["error"]["data"]["message"]
    assert backend.calls == []


def test_generate_renames_output_to_detected_type(tmp_path: Path) -> None:
    backend = FakeBackend(image=PNG)
    dispatcher = Dispatcher(_settings(tmp_path, default_model="google/gemini-image"), backend)
    response = _call(dispatcher, "generate_image", {"prompt": "a cat", "output_path": "out.jpg"})
    assert response is not None
    result = response["result"]
    assert result["isError"] is False
    text = result["content"][0]["text"]
    assert "model: google/gemini-image" in text
    assert "output_path: out.png" in text
    assert "output_path_fixed_from: out.jpg" in text
    assert "mime_type: image/png" in text
    assert "base64_in_response: yes" in text
    assert (tmp_path / "out.png").read_bytes() == PNG
    assert not (tmp_path / "out.jpg").exists()
    assert result["content"][1] == {
        "type": "image",
        "data": base64.b64encode(PNG).decode("ascii"),
        "mimeType": "image/png",
    }
    assert backend.calls[0].model == "google/gemini-image"
    assert backend.calls[0].input_image_data_url is None


def test_generate_without_base64_or_save(tmp_path: Path) -> None:
    dispatcher = Dispatcher(_settings(tmp_path), FakeBackend(image=JPEG))
    response = _call(
        dispatcher,
        "generate_image",
        {"prompt": "a cat", "model": "m", "return_base64": False, "mime_type": "image/webp"},
    )
    assert response is not None
    content = response["result"]["content"]
    assert len(content) == 1
    assert "saved_to: (not saved)" in content[0]["text"]
    assert "mime_type: image/webp (requested; detected: image/jpeg)" in content[0]["text"]
    assert "base64_in_response: no" in content[0]["text"]


def test_generate_creates_nested_directories(tmp_path: Path) -> None:
    dispatcher = Dispatcher(_settings(tmp_path), FakeBackend(image=PNG))
    response = _call(dispatcher, "generate_image", {"prompt": "x", "model": "m", "output_path": "assets/deep/banner"})
    assert response is not None
    assert (tmp_path / "assets" / "deep" / "banner.png").is_file()


def test_generate_rejects_escaping_output_before_backend(tmp_path: Path) -> None:
    backend = FakeBackend()
    dispatcher = Dispatcher(_settings(tmp_path), backend)
    response = _call(dispatcher, "generate_image", {"prompt": "x", "model": "m", "output_path": "../evil.png"})
    assert response is not None
    assert response["error"]["code"] == -32000
    assert backend.calls == []


def test_backend_without_image_reports_summary(tmp_path: Path) -> None:
    dispatcher = Dispatcher(_settings(tmp_path), FakeBackend(image=None))
    response = _call(dispatcher, "generate_image", {"prompt": "x", "model": "m"})
    assert response is not None
    error = response["error"]
    assert error["code"] == -32000
    assert error["message"] == "No image data returned from backend"
    assert error["data"]["response"]["output_types"] == ["message"]


def test_backend_failure_and_unexpected_errors(tmp_path: Path) -> None:
    failing = Dispatcher(_settings(tmp_path), FailingBackend())
    response = _call(failing, "generate_image", {"prompt": "x", "model": "m"})
    assert response is not None
    assert response["error"] == {"code": -32000, "message": "OpenRouter error 502: bad gateway"}

    exploding = Dispatcher(_settings(tmp_path), ExplodingBackend())
    response = _call(exploding, "generate_image", {"prompt": "x", "model": "m"})
    assert response is not None
    assert response["error"] == {"code": -32000, "message": "boom"}


def test_edit_sends_input_image_as_data_url(tmp_path: Path) -> None:
    (tmp_path / "in.png").write_bytes(JPEG)
    backend = FakeBackend(image=PNG)
    dispatcher = Dispatcher(_settings(tmp_path), backend)
    response = _call(
        dispatcher,
        "edit_image",
        {"prompt": "make it blue", "input_image_path": "in.png", "model": "m", "output_path": "edited.png"},
    )
    assert response is not None
    assert "input_image_path: in.png" in _text(response)
    assert "output_path_fixed_from" not in _text(response)
    assert backend.calls[0].input_image_data_url == "data:image/jpeg;base64," + base64.b64encode(JPEG).decode("ascii")


def test_edit_escape_is_generic_failure(tmp_path: Path) -> None:
    root = tmp_path / "root"
    root.mkdir()
    (tmp_path / "secret").write_bytes(PNG)
    backend = FakeBackend()
    dispatcher = Dispatcher(_settings(root), backend)

    existing = _call(dispatcher, "edit_image", {"prompt": "x", "model": "m", "input_image_path": "../secret"})
    missing = _call(dispatcher, "edit_image", {"prompt": "x", "model": "m", "input_image_path": "../nothing"})
    assert existing is not None and missing is not None
    assert existing["error"] == missing["error"]
    assert existing["error"]["code"] == -32000
    assert str(tmp_path) not in existing["error"]["message"]
    assert backend.calls == []


def test_generate_refuses_symlinked_output_path(tmp_path: Path) -> None:
    (tmp_path / "real.png").write_bytes(b"original")
    (tmp_path / "alias.png").symlink_to(tmp_path / "real.png")
    dispatcher = Dispatcher(_settings(tmp_path), FakeBackend(image=PNG))
    response = _call(dispatcher, "generate_image", {"prompt": "x", "model": "m", "output_path": "alias.png"})
    assert response is not None
    assert response["error"]["code"] == -32000
    assert "symbolic link" in response["error"]["message"]
    assert (tmp_path / "real.png").read_bytes() == b"original"
    assert (tmp_path / "alias.png").is_symlink()


def test_edit_refuses_symlinked_input(tmp_path: Path) -> None:
    (tmp_path / "real.png").write_bytes(PNG)
    (tmp_path / "alias.png").symlink_to(tmp_path / "real.png")
    dispatcher = Dispatcher(_settings(tmp_path), FakeBackend())
    response = _call(dispatcher, "edit_image", {"prompt": "x", "model": "m", "input_image_path": "alias.png"})
    assert response is not None
    assert response["error"]["code"] == -32000
    assert "symbolic link" in response["error"]["message"]


def test_read_detects_type_from_bytes(tmp_path: Path) -> None:
    (tmp_path / "assets").mkdir()
    (tmp_path / "assets" / "x.bin").write_bytes(PNG)
    dispatcher = Dispatcher(_settings(tmp_path), FakeBackend())
    response = _call(dispatcher, "read_output_image", {"path": "assets/x.bin"})
    assert response is not None
    content = response["result"]["content"]
    assert "mime_type: image/png" in content[0]["text"]
    assert f"bytes: {len(PNG)}" in content[0]["text"]
    assert content[1]["mimeType"] == "image/png"


def test_read_missing_file_does_not_leak_path(tmp_path: Path) -> None:
    dispatcher = Dispatcher(_settings(tmp_path), FakeBackend())
    response = _call(dispatcher, "read_output_image", {"path": "missing.png"})
    assert response is not None
    assert response["error"]["code"] == -32000
    assert response["error"]["message"] == os.strerror(2)


def test_list_output_images(tmp_path: Path) -> None:
    (tmp_path / "a.png").write_bytes(PNG)
    (tmp_path / "b.txt").write_bytes(b"text")
    dispatcher = Dispatcher(_settings(tmp_path), FakeBackend())
    response = _call(dispatcher, "list_output_images", {"limit": 0})
    assert response is not None
    text = _text(response)
    assert "| a.png |" in text
    assert "b.txt" not in text


def test_list_image_models(tmp_path: Path) -> None:
    models = [
        {"slug": "pricey/model", "name": "Pricey", "endpoint": {"pricing_json": {"seedream:cents_per_image_output": 30}}},
        {"slug": "cheap/model", "name": "Cheap", "endpoint": {"pricing": {"image_output": "0.00001"}}},
    ]
    dispatcher = Dispatcher(_settings(tmp_path), FakeBackend(models=models))
    text = _text(_call(dispatcher, "list_image_models", {}) or {})
    assert "models: 2" in text
    assert text.index("cheap/model") < text.index("pricey/model")
