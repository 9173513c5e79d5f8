from neobridge.tools.base import Tool, ToolResult
from neobridge.tools.files import CreateFileTool, ReadFileTool, builtin_tools
from neobridge.tools.registry import ToolRegistry

__all__ = ["CreateFileTool", "ReadFileTool", "Tool", "ToolRegistry", "ToolResult", "builtin_tools"]
