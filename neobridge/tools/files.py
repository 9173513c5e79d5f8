"""Plain-file tools scoped to the project directory."""

from __future__ import annotations

from os import PathLike
from pathlib import Path
from typing import Any

from neobridge.tools.base import Tool, ToolResult

MAX_READ_LIMIT = 1000


def _int_arg(args: dict[str, Any], key: str, default: int) -> int:
    value = args.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return int(value)


class ProjectFileTool(Tool):
    def __init__(self, project_dir: PathLike | str) -> None:
        self.project_dir = Path(project_dir).expanduser().resolve()

    def resolve(self, name: str, path: str = "") -> Path | None:
        """Absolute path for ``name`` under ``path``, or None if it points outside the project."""
        target = (self.project_dir / path / name).resolve()
        if not target.is_relative_to(self.project_dir):
            return None
        return target


class ReadFileTool(ProjectFileTool):
    name = "read_file"
    description = "Read a text file from the project, with 1-based line offset and limit"

    def execute(self, args: dict[str, Any]) -> ToolResult:
        name = args.get("name")
        if not isinstance(name, str) or not name:
            return ToolResult.fail("Missing required parameter: name")

        offset = max(1, _int_arg(args, "offset", 1))
        limit = min(max(1, _int_arg(args, "limit", 100)), MAX_READ_LIMIT)

        target = self.resolve(name, str(args.get("path") or ""))
        if target is None:
            return ToolResult.fail(f"Path is outside the project: {name}")
        if not target.is_file():
            return ToolResult.fail(f"File not found: {target}")
        try:
            lines = target.read_text(encoding="utf-8", errors="replace").splitlines()
        except OSError as e:
            return ToolResult.fail(f"Failed to read file: {target} ({e})")

        total = len(lines)
        start = offset - 1
        if start >= total:
            return ToolResult.ok(f"# FILE {name} lines={total} offset={offset} beyond_end")

        end = min(start + limit, total)
        output = [f"# FILE {name} lines={offset}-{end}/{total}"]
        output.extend(f"{number}\t{line}" for number, line in enumerate(lines[start:end], start=offset))
        return ToolResult.ok("\n".join(output) + "\n")


class CreateFileTool(ProjectFileTool):
    name = "create_file"
    description = "Create a text file in the project; refuses to replace an existing file unless overwrite is set"

    def execute(self, args: dict[str, Any]) -> ToolResult:
        name = args.get("name")
        if not isinstance(name, str) or not name:
            return ToolResult.fail("Missing required parameter: name")
        content = args.get("content", "")
        if not isinstance(content, str):
            return ToolResult.fail("Parameter 'content' must be a string")

        target = self.resolve(name, str(args.get("path") or ""))
        if target is None:
            return ToolResult.fail(f"Path is outside the project: {name}")
        if target.exists() and not args.get("overwrite", False):
            return ToolResult.fail(f"File already exists: {target}")

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        except OSError as e:
            return ToolResult.fail(f"Failed to write file: {target} ({e})")

        line_count = len(content.splitlines())
        return ToolResult.ok(f"Created {target.relative_to(self.project_dir).as_posix()} ({line_count} lines)")


def builtin_tools(project_dir: PathLike | str) -> list[Tool]:
    return [ReadFileTool(project_dir), CreateFileTool(project_dir)]
