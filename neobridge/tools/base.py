from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel


class ToolResult(BaseModel):
    """Outcome of a tool run. ``output`` is plain text and is sent to the backend as-is."""

    success: bool = False
    output: str = ""

    @classmethod
    def ok(cls, output: str) -> ToolResult:
        return cls(success=True, output=output)

    @classmethod
    def fail(cls, output: str) -> ToolResult:
        return cls(success=False, output=output)


class Tool(ABC):
    """A named function the model can ask the host to run."""

    name: str
    description: str

    @abstractmethod
    def execute(self, args: dict[str, Any]) -> ToolResult:
        pass
