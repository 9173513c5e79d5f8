"""Request body models for the ``/ai`` and ``/ai/tool-result`` endpoints."""

from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import BaseModel, Field

from neobridge.models.conversation import ConversationImage, ConversationMessage


class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ImageUrl(BaseModel):
    url: str


class ImagePart(BaseModel):
    type: Literal["image_url"] = "image_url"
    image_url: ImageUrl

    @classmethod
    def from_image(cls, image: ConversationImage) -> ImagePart:
        return cls(image_url=ImageUrl(url=image.to_data_url()))


ContentPart = Union[TextPart, ImagePart]


class ProviderRouting(BaseModel):
    provider: str | None = None
    sort_by: str | None = None
    allow_fallbacks: bool | None = None


class RequestSettings(BaseModel):
    max_cost_per_query: float | None = None
    max_tokens: int | None = None
    enable_thinking: bool | None = None
    max_thinking_tokens: int | None = None
    reasoning_effort: str | None = None
    provider_routing: ProviderRouting | None = None


class ChatRequest(BaseModel):
    """What the caller asks for in one turn. The client adds the session id and settings."""

    prompt: str = ""
    agent: str
    model: str
    messages: list[ConversationMessage] = Field(default_factory=list)
    images: list[ConversationImage] = Field(default_factory=list)

    def build_payload(self, session_id: str, settings: RequestSettings | None = None) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "prompt": self.prompt,
            "agent": self.agent,
            "model": self.model,
            "session_id": session_id,
        }
        if self.images:
            parts: list[ContentPart] = []
            if self.prompt:
                parts.append(TextPart(text=self.prompt))
            parts.extend(ImagePart.from_image(image) for image in self.images)
            payload["content"] = [part.model_dump() for part in parts]
        if self.messages:
            payload["messages"] = [message.to_wire() for message in self.messages]
        if settings is not None:
            payload["settings"] = settings.model_dump(exclude_none=True)
        return payload


class ToolResultSubmission(BaseModel):
    session_id: str
    call_id: str
    result: str
