"""Conversation models shared by the log, the wire protocol and the UI."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_serializer

Role = Literal["user", "assistant", "tool"]


class FunctionCall(BaseModel):
    name: str = ""
    arguments: str = ""


class ToolCallRef(BaseModel):
    """A tool call made by the model, as referenced from an assistant message."""

    id: str = ""
    type: str = "function"
    function: FunctionCall = Field(default_factory=FunctionCall)

    @classmethod
    def create(cls, call_id: str, name: str, arguments: str) -> ToolCallRef:
        return cls(id=call_id, function=FunctionCall(name=name, arguments=arguments))

    @property
    def name(self) -> str:
        return self.function.name

    @property
    def arguments(self) -> str:
        return self.function.arguments


class ConversationImage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    data: str = Field("", alias="base64")
    mime_type: str = "image/png"

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


class ConversationMessage(BaseModel):
    """One record of the conversation log.

    Serialized the same way as the ``messages[]`` entries of the ``/ai``
    request: empty fields are left out so that a user message is just
    ``{"role":"user","content":"..."}``.
    """

    model_config = ConfigDict(populate_by_name=True)

    role: Role
    content: str = ""
    tool_calls: list[ToolCallRef] = Field(default_factory=list)
    tool_call_id: str | None = None
    images: list[ConversationImage] = Field(default_factory=list)

    @classmethod
    def user(cls, content: str, images: list[ConversationImage] | None = None) -> ConversationMessage:
        return cls(role="user", content=content, images=images or [])

    @classmethod
    def assistant(cls, content: str = "", tool_calls: list[ToolCallRef] | None = None) -> ConversationMessage:
        return cls(role="assistant", content=content, tool_calls=tool_calls or [])

    @classmethod
    def tool(cls, call_id: str, result: str) -> ConversationMessage:
        return cls(role="tool", content=result, tool_call_id=call_id)

    @model_serializer(mode="wrap")
    def _drop_empty_fields(self, handler) -> dict[str, Any]:
        data = handler(self)
        return {key: value for key, value in data.items() if key == "role" or value not in ("", None, [])}

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)

    def to_json_line(self) -> str:
        # pydantic emits compact JSON and escapes control characters, so a
        # record never spans more than one line.
        return self.model_dump_json(by_alias=True)


class ConversationMetadata(BaseModel):
    id: int
    title: str
    message_count: int = 0
    created_at: datetime
    updated_at: datetime


class MetadataIndex(BaseModel):
    next_id: int = 1
    conversations: list[ConversationMetadata] = Field(default_factory=list)
