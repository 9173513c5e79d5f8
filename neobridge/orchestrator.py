"""Turn orchestration: persist the user turn, stream the answer, gate host tools, persist the result."""

from __future__ import annotations

from collections.abc import Sequence

from neobridge.api_client import BridgeAPIClient, StreamHandler
from neobridge.approval import ApprovalGate, PendingToolCall
from neobridge.config import Config
from neobridge.context import build_prompt
from neobridge.errors import TurnInProgressError
from neobridge.log import logger
from neobridge.models.conversation import ConversationImage, ConversationMessage, ToolCallRef
from neobridge.models.request import ChatRequest
from neobridge.sink import UISink
from neobridge.storage.manager import ConversationManager


class TurnHandler(StreamHandler):
    """Per-turn accumulators and the routing of stream events to the UI, the gate and the log."""

    def __init__(self, orchestrator: TurnOrchestrator) -> None:
        self.orchestrator = orchestrator
        self.sink = orchestrator.sink
        self.gate = orchestrator.gate
        self.conversations = orchestrator.conversations

        self.accumulated_content = ""
        self.pending_tool_calls: list[ToolCallRef] = []
        self.pending_tool_results: list[tuple[str, str]] = []
        self.host_call_ids: list[str] = []
        self.completed = False
        self.failed = False

    def record_tool_result(self, call_id: str, result: str) -> None:
        # A host tool's result may come from the local run and again from the server; keep the first.
        if any(recorded_id == call_id for recorded_id, _ in self.pending_tool_results):
            return
        self.pending_tool_results.append((call_id, result))

    async def on_content(self, content: str) -> None:
        self.sink.on_content_chunk(content)
        self.accumulated_content += content

    async def on_reasoning(self, reasoning: str) -> None:
        self.sink.on_reasoning_chunk(reasoning)

    async def on_backend_tool(self, tool_name: str, args_json: str, call_id: str) -> None:
        self.pending_tool_calls.append(ToolCallRef.create(call_id, tool_name, args_json))
        self.sink.on_tool_call(tool_name, args_json, call_id, False)

    async def on_host_tool(self, session_id: str, tool_name: str, args_json: str, call_id: str) -> None:
        self.pending_tool_calls.append(ToolCallRef.create(call_id, tool_name, args_json))
        self.host_call_ids.append(call_id)
        self.sink.on_tool_call(tool_name, args_json, call_id, self.gate.requires_approval(tool_name))
        await self.gate.request(session_id, tool_name, args_json, call_id, on_result=self.record_tool_result)

    async def on_tool_result(self, call_id: str, result: str) -> None:
        self.record_tool_result(call_id, result)
        self.sink.on_tool_result(call_id, result)

    async def on_cost(self, cost: float) -> None:
        self.sink.on_cost(cost)

    async def on_complete(self) -> None:
        if self.completed or self.failed:
            return
        await self.gate.wait_settled(self.host_call_ids)
        self.completed = True
        self.persist()
        self.gate.prune_settled()
        self.sink.on_assistant_end()

    async def on_error(self, message: str) -> None:
        if self.completed:
            logger.warning(f"Ignoring error after the turn completed: {message}")
            return
        if self.failed:
            return
        self.failed = True
        logger.error(f"API error: {message}")
        self.conversations.append_message(ConversationMessage.assistant(f"Error: {message}"))
        self.gate.prune_settled()
        self.sink.on_error(message)
        self.sink.on_assistant_end()

    def persist(self) -> None:
        if not self.pending_tool_calls:
            self.conversations.append_message(ConversationMessage.assistant(self.accumulated_content))
            return

        self.conversations.append_message(ConversationMessage.assistant(tool_calls=self.pending_tool_calls))
        for call_id, result in self.pending_tool_results:
            self.conversations.append_message(ConversationMessage.tool(call_id, result))
        if self.accumulated_content:
            self.conversations.append_message(ConversationMessage.assistant(self.accumulated_content))


class TurnOrchestrator:
    """Top-level controller of the bridge. Runs one turn at a time."""

    def __init__(
        self,
        config: Config,
        conversations: ConversationManager,
        api_client: BridgeAPIClient,
        gate: ApprovalGate,
        sink: UISink | None = None,
    ) -> None:
        self.config = config
        self.conversations = conversations
        self.api_client = api_client
        self.gate = gate
        self.sink = sink or gate.sink

        self.current_turn: TurnHandler | None = None

    @property
    def is_busy(self) -> bool:
        return self.current_turn is not None

    async def send_message(
        self,
        user_text: str,
        images: Sequence[ConversationImage] = (),
        context_files: Sequence[str] = (),
        agent: str | None = None,
        model: str | None = None,
    ) -> str | None:
        """Run one turn.

        Returns the session id of the ``/ai`` request, or None if no request was made.

        Raises:
            TurnInProgressError: Another turn is still running.
        """
        if self.is_busy:
            raise TurnInProgressError("A turn is already in progress")
        if not user_text and not images and not context_files:
            logger.warning("Ignoring empty message")
            return None

        agent = agent or self.config.default_agent
        model = model or self.config.default_model
        images = list(images)

        prompt = build_prompt(user_text, context_files, self.config.project_dir)
        self.conversations.append_message(ConversationMessage.user(prompt, images))
        history = self.conversations.current_messages[:-1]
        self.sink.on_user_message(prompt, images)

        turn = TurnHandler(self)
        self.current_turn = turn
        self.sink.on_assistant_start(agent, model)
        logger.info(f"Starting turn with agent {agent}, model {model}, conversation {self.conversations.current_id}")
        try:
            request = ChatRequest(prompt=prompt, agent=agent, model=model, messages=history, images=images)
            return await self.api_client.send(request, turn)
        finally:
            self.current_turn = None

    async def approve(self, call_id: str, always_allow: bool = False) -> PendingToolCall | None:
        return await self.gate.accept(call_id, always_allow=always_allow)

    async def reject(self, call_id: str) -> PendingToolCall | None:
        return await self.gate.reject(call_id)

    def new_conversation(self) -> None:
        self.conversations.clear_current()

    def open_conversation(self, conversation_id: int) -> None:
        self.conversations.set_current(conversation_id)
        self.replay()

    def replay(self) -> None:
        replay_messages(self.conversations.current_messages, self.sink)


def replay_messages(messages: Sequence[ConversationMessage], sink: UISink) -> None:
    """Show stored messages in the UI. Tool calls are shown as already handled."""
    for message in messages:
        if message.role == "user":
            sink.on_user_message(message.content, message.images)
        elif message.role == "assistant":
            sink.on_assistant_start("Assistant", "")
            if message.content:
                sink.on_content_chunk(message.content)
            for tool_call in message.tool_calls:
                sink.on_tool_call(tool_call.name, tool_call.arguments, tool_call.id, False)
            sink.on_assistant_end()
        elif message.role == "tool" and message.tool_call_id:
            sink.on_tool_result(message.tool_call_id, message.content)
