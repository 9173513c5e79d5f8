"""Typed records carried in the ``data:`` payloads of the ``/ai`` event stream."""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


class ContentEvent(BaseModel):
    type: Literal["content"]
    content: str


class ReasoningEvent(BaseModel):
    type: Literal["reasoning"]
    reasoning: str


class _ToolCallEvent(BaseModel):
    tool: str
    call_id: str
    args: dict[str, Any] = Field(default_factory=dict)

    @property
    def args_json(self) -> str:
        return json.dumps(self.args, separators=(",", ":"), ensure_ascii=False)


class BackendToolCallEvent(_ToolCallEvent):
    type: Literal["tool_call_backend"]


class HostToolCallEvent(_ToolCallEvent):
    type: Literal["tool_call_host"]


class ToolResultEvent(BaseModel):
    type: Literal["tool_result"]
    call_id: str
    result: str


class CostEvent(BaseModel):
    type: Literal["cost"]
    cost: float


class FinalEvent(BaseModel):
    type: Literal["final"]


class ErrorEvent(BaseModel):
    type: Literal["error"]
    content: str = ""


StreamEvent = Annotated[
    Union[
        ContentEvent,
        ReasoningEvent,
        BackendToolCallEvent,
        HostToolCallEvent,
        ToolResultEvent,
        CostEvent,
        FinalEvent,
        ErrorEvent,
    ],
    Field(discriminator="type"),
]

stream_event_adapter: TypeAdapter[StreamEvent] = TypeAdapter(StreamEvent)

EVENT_TYPES = frozenset({
    "content",
    "reasoning",
    "tool_call_backend",
    "tool_call_host",
    "tool_result",
    "cost",
    "final",
    "error",
})
