from __future__ import annotations

import os

os.environ["LOGURU_LEVEL"] = "DEBUG"

import asyncio
import json
from collections.abc import AsyncIterator, Iterable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import httpx
import pytest

from neobridge.config import Config
from neobridge.models.conversation import ConversationImage
from neobridge.sink import UISink
from neobridge.tools.base import Tool, ToolResult

BACKEND_URL = "http://backend.test"


def sse_body(*events: dict[str, Any]) -> str:
    return "".join(f"data: {json.dumps(event)}\n\n" for event in events)


async def _iter_chunks(chunks: list[bytes], error: Exception | None = None) -> AsyncIterator[bytes]:
    for chunk in chunks:
        await asyncio.sleep(0)
        yield chunk
    if error is not None:
        raise error


class FakeBackend:
    """Stands in for the agent backend behind an ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.body = ""
        self.chunk_size: int | None = None
        self.status_code = 200
        self.tool_result_status = 200
        self.error: Exception | None = None
        self.body_error: Exception | None = None

        self.requests: list[httpx.Request] = []
        self.tool_results: list[dict[str, Any]] = []

    def stream(self, *events: dict[str, Any], chunk_size: int | None = None) -> None:
        self.body = sse_body(*events)
        self.chunk_size = chunk_size

    @property
    def ai_requests(self) -> list[dict[str, Any]]:
        return [json.loads(request.content) for request in self.requests if request.url.path == "/ai"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error

        if request.url.path == "/ai/tool-result":
            self.tool_results.append(json.loads(request.content))
            return httpx.Response(self.tool_result_status, text="ok")

        if self.status_code != 200:
            return httpx.Response(self.status_code, text=self.body)

        raw = self.body.encode("utf-8")
        size = self.chunk_size or len(raw) or 1
        chunks = [raw[i : i + size] for i in range(0, len(raw), size)]
        return httpx.Response(
            200,
            headers={"content-type": "text/event-stream"},
            content=_iter_chunks(chunks, self.body_error),
        )


class RecordingSink(UISink):
    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def names(self) -> list[str]:
        return [call[0] for call in self.calls]

    def of(self, name: str) -> list[tuple]:
        return [call[1:] for call in self.calls if call[0] == name]

    def on_user_message(self, content: str, images: list[ConversationImage]) -> None:
        self.calls.append(("user_message", content, len(images)))

    def on_assistant_start(self, agent: str, model: str) -> None:
        self.calls.append(("assistant_start", agent, model))

    def on_content_chunk(self, content: str) -> None:
        self.calls.append(("content", content))

    def on_reasoning_chunk(self, reasoning: str) -> None:
        self.calls.append(("reasoning", reasoning))

    def on_tool_call(self, tool_name: str, args_json: str, call_id: str, requires_approval: bool) -> None:
        self.calls.append(("tool_call", tool_name, args_json, call_id, requires_approval))

    def on_tool_result(self, call_id: str, result: str) -> None:
        self.calls.append(("tool_result", call_id, result))

    def on_assistant_end(self) -> None:
        self.calls.append(("assistant_end",))

    def on_cost(self, cost: float) -> None:
        self.calls.append(("cost", cost))

    def on_error(self, message: str) -> None:
        self.calls.append(("error", message))


class SpyTool(Tool):
    """Records every call; returns ``output`` or raises ``error``."""

    description = "Test tool"

    def __init__(self, name: str = "X", output: str = "done", success: bool = True, error: Exception | None = None):
        self.name = name
        self.output = output
        self.success = success
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def execute(self, args: dict[str, Any]) -> ToolResult:
        self.calls.append(args)
        if self.error is not None:
            raise self.error
        return ToolResult(success=self.success, output=self.output)


class TickingClock:
    """Advances one second per call so timestamps are distinct and ordered."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


async def wait_until(predicate, attempts: int = 1000) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition was never met")


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    path = tmp_path / "project"
    path.mkdir()
    return path


@pytest.fixture
def config(tmp_path: Path, project_dir: Path) -> Config:
    return Config(
        api_key="test-key",
        backend_url=BACKEND_URL,
        saved_dir=(tmp_path / "saved").as_posix(),
        project_dir=project_dir.as_posix(),
    )


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
async def http_client(backend: FakeBackend):
    async with httpx.AsyncClient(transport=httpx.MockTransport(backend.handler)) as client:
        yield client


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def spy_tool() -> SpyTool:
    return SpyTool()


@pytest.fixture
def tools(spy_tool: SpyTool) -> Iterable[Tool]:
    return [spy_tool]
