from __future__ import annotations

from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager

import httpx

from neobridge.api_client import BridgeAPIClient
from neobridge.approval import ApprovalGate
from neobridge.config import Config
from neobridge.log import logger
from neobridge.orchestrator import TurnOrchestrator
from neobridge.sink import UISink
from neobridge.storage.manager import ConversationManager
from neobridge.storage.store import ConversationStore
from neobridge.tools.base import Tool
from neobridge.tools.files import builtin_tools
from neobridge.tools.registry import ToolRegistry


def create_conversation_manager(config: Config) -> ConversationManager:
    return ConversationManager(ConversationStore(config.conversations_dir))


def create_orchestrator(
    config: Config,
    sink: UISink | None = None,
    tools: Iterable[Tool] | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> TurnOrchestrator:
    """Wire the bridge components together. ``tools`` defaults to the built-in file tools."""
    sink = sink or UISink()
    registry = ToolRegistry(builtin_tools(config.project_dir) if tools is None else tools)
    logger.info(f"Tool registry initialized with {len(registry)} tools")

    api_client = BridgeAPIClient(config, http_client=http_client)
    gate = ApprovalGate(registry, api_client, sink)
    return TurnOrchestrator(config, create_conversation_manager(config), api_client, gate, sink)


@asynccontextmanager
async def init_bridge(
    config: Config,
    sink: UISink | None = None,
    tools: Iterable[Tool] | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> AsyncIterator[TurnOrchestrator]:
    orchestrator = create_orchestrator(config, sink, tools, http_client)
    try:
        yield orchestrator
    finally:
        await orchestrator.api_client.close()
        logger.info("Agent bridge disposed")
