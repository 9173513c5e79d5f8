"""Approval gate for host tool calls.

Each call moves through::

    pending_approval --accept/always-allow--> executing --> completed | failed
    pending_approval --reject--> rejected

Tools allowed with "always allow" skip the prompt for the rest of the
process lifetime. Every outcome is sent back to ``/ai/tool-result``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from enum import Enum

from pydantic import BaseModel

from neobridge.api_client import BridgeAPIClient
from neobridge.log import logger
from neobridge.sink import UISink
from neobridge.tools.registry import ToolRegistry

REJECTION_RESULT = '{"error":"Tool execution rejected by user"}'

ResultListener = Callable[[str, str], None]


class ToolCallState(str, Enum):
    PENDING_APPROVAL = "pending_approval"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"
    REJECTED = "rejected"


SETTLED_STATES = frozenset({ToolCallState.COMPLETED, ToolCallState.FAILED, ToolCallState.REJECTED})


class PendingToolCall(BaseModel):
    call_id: str
    tool_name: str
    arguments: str
    session_id: str
    state: ToolCallState = ToolCallState.PENDING_APPROVAL
    result: str | None = None

    @property
    def settled(self) -> bool:
        return self.state in SETTLED_STATES


class ApprovalGate:
    always_allowed: set[str]
    calls: dict[str, PendingToolCall]

    def __init__(self, registry: ToolRegistry, api_client: BridgeAPIClient, sink: UISink | None = None) -> None:
        self.registry = registry
        self.api_client = api_client
        self.sink = sink or UISink()

        self.always_allowed = set()
        self.calls = {}
        self._listeners: dict[str, ResultListener] = {}
        self._settled: dict[str, asyncio.Event] = {}

    def requires_approval(self, tool_name: str) -> bool:
        return tool_name not in self.always_allowed

    def get(self, call_id: str) -> PendingToolCall | None:
        return self.calls.get(call_id)

    def pending(self) -> list[PendingToolCall]:
        return [call for call in self.calls.values() if call.state == ToolCallState.PENDING_APPROVAL]

    async def request(
        self,
        session_id: str,
        tool_name: str,
        arguments: str,
        call_id: str,
        on_result: ResultListener | None = None,
    ) -> PendingToolCall:
        """Record a host tool call; run it right away if the tool is always allowed."""
        call = PendingToolCall(call_id=call_id, tool_name=tool_name, arguments=arguments, session_id=session_id)
        self.calls[call_id] = call
        self._settled[call_id] = asyncio.Event()
        if on_result is not None:
            self._listeners[call_id] = on_result

        if tool_name in self.always_allowed:
            logger.info(f"Tool '{tool_name}' is always allowed, executing call {call_id}")
            await self._execute(call)
        return call

    async def accept(self, call_id: str, always_allow: bool = False) -> PendingToolCall | None:
        call = self._take_pending(call_id)
        if call is None:
            return None
        if always_allow:
            self.always_allowed.add(call.tool_name)
        logger.info(f"Tool approved - call id: {call_id}, tool: {call.tool_name}, always allow: {always_allow}")
        await self._execute(call)
        return call

    async def reject(self, call_id: str) -> PendingToolCall | None:
        call = self._take_pending(call_id)
        if call is None:
            return None
        logger.info(f"Tool rejected - call id: {call_id}, tool: {call.tool_name}")
        call.state = ToolCallState.REJECTED
        await self._finish(call, REJECTION_RESULT)
        return call

    async def wait_settled(self, call_ids: Iterable[str]) -> None:
        for call_id in call_ids:
            event = self._settled.get(call_id)
            if event is not None:
                await event.wait()

    def prune_settled(self) -> int:
        """Forget calls whose result has been delivered. Returns how many were dropped."""
        done = [call_id for call_id, event in self._settled.items() if event.is_set()]
        for call_id in done:
            self.calls.pop(call_id, None)
            self._listeners.pop(call_id, None)
            del self._settled[call_id]
        return len(done)

    def _take_pending(self, call_id: str) -> PendingToolCall | None:
        call = self.calls.get(call_id)
        if call is None:
            logger.error(f"No pending tool call with id {call_id}")
            return None
        if call.state != ToolCallState.PENDING_APPROVAL:
            logger.warning(f"Tool call {call_id} is already {call.state.value}")
            return None
        return call

    async def _execute(self, call: PendingToolCall) -> None:
        call.state = ToolCallState.EXECUTING
        result = self.registry.execute(call.tool_name, call.arguments)
        call.state = ToolCallState.COMPLETED if result.success else ToolCallState.FAILED
        await self._finish(call, result.output)

    async def _finish(self, call: PendingToolCall, result: str) -> None:
        call.result = result
        self.sink.on_tool_result(call.call_id, result)
        listener = self._listeners.pop(call.call_id, None)
        if listener is not None:
            listener(call.call_id, result)
        try:
            await self.api_client.submit_tool_result(call.session_id, call.call_id, result)
        finally:
            self._settled[call.call_id].set()
