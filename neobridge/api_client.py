"""API client for the agent backend."""

from __future__ import annotations

import json
from typing import Any
from uuid import uuid4

import httpx
from httpx_sse import ServerSentEvent, aconnect_sse
from pydantic import ValidationError

from neobridge.config import Config
from neobridge.errors import ConfigurationError
from neobridge.log import logger
from neobridge.models.events import (
    EVENT_TYPES,
    BackendToolCallEvent,
    ContentEvent,
    CostEvent,
    ErrorEvent,
    FinalEvent,
    HostToolCallEvent,
    ReasoningEvent,
    StreamEvent,
    ToolResultEvent,
    stream_event_adapter,
)
from neobridge.models.request import ChatRequest, ToolResultSubmission
from neobridge.runtime_settings import load_request_settings
from neobridge.sse import ProgressiveSSEParser


class StreamHandler:
    """Receives the typed events of one ``/ai`` stream, in stream order.

    Every method is a no-op here; subclasses override what they need.
    """

    async def on_content(self, content: str) -> None:
        pass

    async def on_reasoning(self, reasoning: str) -> None:
        pass

    async def on_backend_tool(self, tool_name: str, args_json: str, call_id: str) -> None:
        pass

    async def on_host_tool(self, session_id: str, tool_name: str, args_json: str, call_id: str) -> None:
        pass

    async def on_tool_result(self, call_id: str, result: str) -> None:
        pass

    async def on_cost(self, cost: float) -> None:
        pass

    async def on_complete(self) -> None:
        pass

    async def on_error(self, message: str) -> None:
        pass


class BridgeAPIClient:
    """API client for the agent backend."""

    def __init__(self, config: Config, http_client: httpx.AsyncClient | None = None):
        """Initialize the API client.

        Args:
            config: The bridge configuration (backend URL, API key, timeouts).
            http_client: Optional preconfigured httpx client, mainly for tests.
        """
        self.config = config
        self.client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(config.read_timeout, connect=config.connect_timeout)
        )
        logger.info(f"Initialized API client with base URL: {config.backend_url}")

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-API-Key": self.config.api_key or "",
        }

    async def send(self, request: ChatRequest, handler: StreamHandler) -> str | None:
        """Send one turn to ``<backend>/ai`` and dispatch the streamed events to ``handler``.

        Args:
            request: The prompt, history and attachments of the turn.
            handler: Receives the parsed events and, on failure, ``on_error``.

        Returns:
            The session id generated for this request, or None if no request was issued.
        """
        try:
            self.config.validate_backend()
        except ConfigurationError as e:
            await handler.on_error(str(e))
            return None

        session_id = str(uuid4())
        settings = load_request_settings(self.config.settings_file_path, request.model)
        payload = request.build_payload(session_id, settings)
        url = f"{self.config.get_backend_url()}/ai"

        logger.info(f"Making POST request to: {url} (session {session_id}, {len(request.messages)} prior messages)")
        try:
            async with aconnect_sse(self.client, "POST", url, json=payload, headers=self.headers) as event_source:
                response = event_source.response
                if response.status_code != 200:
                    await response.aread()
                    await handler.on_error(f"Server error: {response.status_code} - {response.text}")
                    return session_id

                parser = ProgressiveSSEParser()
                body = ""
                completed = False
                async for chunk in response.aiter_text():
                    body += chunk
                    completed |= await self._dispatch_all(parser.feed(body), session_id, handler)
                completed |= await self._dispatch_all(parser.flush(body), session_id, handler)
        except httpx.HTTPError as e:
            logger.error(f"Request to {url} failed: {e!r}")
            await handler.on_error(f"Request failed: {e}")
            return session_id

        if not completed:
            logger.warning(f"Stream for session {session_id} closed without a final event")
        return session_id

    async def _dispatch_all(self, events: list[ServerSentEvent], session_id: str, handler: StreamHandler) -> bool:
        completed = False
        for sse in events:
            event = self.parse_event(sse)
            if event is None:
                continue
            await self.dispatch(event, session_id, handler)
            completed |= isinstance(event, FinalEvent)
        return completed

    @staticmethod
    def parse_event(sse: ServerSentEvent) -> StreamEvent | None:
        if not sse.data:
            return None
        logger.debug(f"Raw event data: {sse.data}")
        try:
            data: Any = json.loads(sse.data)
        except ValueError:
            logger.error(f"Failed to deserialize event JSON: {sse.data}")
            return None

        if not isinstance(data, dict) or data.get("type") not in EVENT_TYPES:
            logger.debug(f"Dropping unknown event: {sse.data}")
            return None
        try:
            return stream_event_adapter.validate_python(data)
        except ValidationError as e:
            logger.warning(f"Dropping malformed {data['type']} event: {e.errors(include_url=False)}")
            return None

    @staticmethod
    async def dispatch(event: StreamEvent, session_id: str, handler: StreamHandler) -> None:
        if isinstance(event, ContentEvent):
            await handler.on_content(event.content)
        elif isinstance(event, ReasoningEvent):
            await handler.on_reasoning(event.reasoning)
        elif isinstance(event, BackendToolCallEvent):
            logger.info(f"Backend tool call - name: {event.tool}, call id: {event.call_id}")
            await handler.on_backend_tool(event.tool, event.args_json, event.call_id)
        elif isinstance(event, HostToolCallEvent):
            logger.info(f"Host tool call - name: {event.tool}, call id: {event.call_id}, session: {session_id}")
            await handler.on_host_tool(session_id, event.tool, event.args_json, event.call_id)
        elif isinstance(event, ToolResultEvent):
            await handler.on_tool_result(event.call_id, event.result)
        elif isinstance(event, CostEvent):
            await handler.on_cost(event.cost)
        elif isinstance(event, FinalEvent):
            logger.info(f"Stream complete for session {session_id}")
            await handler.on_complete()
        elif isinstance(event, ErrorEvent):
            logger.error(f"Stream error: {event.content}")

    async def submit_tool_result(self, session_id: str, call_id: str, result: str) -> bool:
        """Post a host tool's result to ``<backend>/ai/tool-result``.

        Returns:
            True if the backend accepted the result.
        """
        url = f"{self.config.get_backend_url()}/ai/tool-result"
        body = ToolResultSubmission(session_id=session_id, call_id=call_id, result=result)

        logger.info(f"Submitting tool result - session: {session_id}, call id: {call_id}")
        try:
            response = await self.client.post(url, json=body.model_dump(), headers=self.headers)
        except httpx.HTTPError as e:
            logger.error(f"Failed to submit tool result for call id {call_id}: {e!r}")
            return False

        if response.status_code != 200:
            logger.error(f"Failed to submit tool result for call id {call_id}: {response.status_code} - {response.text}")
            return False
        logger.info(f"Tool result submitted for call id {call_id}")
        return True

    async def close(self) -> None:
        """Close the client."""
        logger.info("Closing API client")
        await self.client.aclose()
