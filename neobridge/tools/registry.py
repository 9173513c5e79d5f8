from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from typing import Any

from neobridge.log import logger
from neobridge.tools.base import Tool, ToolResult


class ToolRegistry:
    """Name-indexed table of host tools. The only way tools get executed."""

    tools: dict[str, Tool]

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        self.tools = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: Tool) -> None:
        if tool.name in self.tools:
            logger.warning(f"Tool '{tool.name}' already registered, overwriting")
        self.tools[tool.name] = tool
        logger.debug(f"Registered tool: {tool.name}")

    def has_tool(self, name: str) -> bool:
        return name in self.tools

    def get_tool(self, name: str) -> Tool | None:
        return self.tools.get(name)

    def tool_names(self) -> list[str]:
        return list(self.tools)

    def __len__(self) -> int:
        return len(self.tools)

    def execute(self, name: str, args: str | Mapping[str, Any] | None = None) -> ToolResult:
        """Run tool ``name`` with a JSON-object argument string or an already parsed mapping."""
        if isinstance(args, Mapping):
            parsed: Any = dict(args)
        elif not args:
            parsed = {}
        else:
            try:
                parsed = json.loads(args)
            except ValueError:
                parsed = None
        if not isinstance(parsed, dict):
            return ToolResult.fail(f"Failed to parse arguments for tool '{name}'")

        tool = self.get_tool(name)
        if tool is None:
            return ToolResult.fail(f"Unknown tool: {name}")

        logger.info(f"Executing tool: {name}")
        try:
            result = tool.execute(parsed)
        except Exception as e:
            logger.exception(f"Tool '{name}' raised")
            return ToolResult.fail(f"Error executing tool {name}: {e}")

        if result.success:
            logger.info(f"Tool '{name}' succeeded")
        else:
            logger.warning(f"Tool '{name}' failed: {result.output}")
        return result
