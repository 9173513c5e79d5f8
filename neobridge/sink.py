"""Callbacks the bridge invokes on the UI while a turn runs."""

from __future__ import annotations

from neobridge.models.conversation import ConversationImage


class UISink:
    """Base UI sink; every callback is a no-op. Front ends override what they display."""

    def on_user_message(self, content: str, images: list[ConversationImage]) -> None:
        pass

    def on_assistant_start(self, agent: str, model: str) -> None:
        pass

    def on_content_chunk(self, content: str) -> None:
        pass

    def on_reasoning_chunk(self, reasoning: str) -> None:
        pass

    def on_tool_call(self, tool_name: str, args_json: str, call_id: str, requires_approval: bool) -> None:
        pass

    def on_tool_result(self, call_id: str, result: str) -> None:
        pass

    def on_assistant_end(self) -> None:
        pass

    def on_cost(self, cost: float) -> None:
        pass

    def on_error(self, message: str) -> None:
        pass
