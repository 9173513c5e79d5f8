import pytest
from conftest import SpyTool
from inline_snapshot import snapshot

from neobridge.tools import CreateFileTool, ReadFileTool, ToolRegistry, ToolResult, builtin_tools


@pytest.fixture
def sample_file(project_dir):
    path = project_dir / "Source" / "a.txt"
    path.parent.mkdir()
    path.write_text("a\nb\nc\nd\ne\n", encoding="utf-8")
    return path


def test_read_file_range(project_dir, sample_file):
    result = ReadFileTool(project_dir).execute({"name": "a.txt", "path": "Source", "offset": 2, "limit": 2})
    assert result.success
    assert result.output == snapshot("# FILE a.txt lines=2-3/5\n2\tb\n3\tc\n")


def test_read_file_defaults_to_start(project_dir, sample_file):
    result = ReadFileTool(project_dir).execute({"name": "Source/a.txt"})
    assert result.output.splitlines()[0] == "# FILE Source/a.txt lines=1-5/5"


def test_read_file_beyond_end(project_dir, sample_file):
    result = ReadFileTool(project_dir).execute({"name": "Source/a.txt", "offset": 9})
    assert result == ToolResult.ok("# FILE Source/a.txt lines=5 offset=9 beyond_end")


def test_read_file_not_found(project_dir):
    result = ReadFileTool(project_dir).execute({"name": "missing.txt"})
    assert not result.success
    assert result.output.startswith("File not found: ")


def test_read_file_outside_project(project_dir, tmp_path):
    (tmp_path / "secret.txt").write_text("x")
    result = ReadFileTool(project_dir).execute({"name": "../secret.txt"})
    assert result == ToolResult.fail("Path is outside the project: ../secret.txt")


def test_read_file_requires_name(project_dir):
    assert ReadFileTool(project_dir).execute({}) == ToolResult.fail("Missing required parameter: name")


def test_create_file(project_dir):
    tool = CreateFileTool(project_dir)
    result = tool.execute({"name": "New.txt", "path": "Docs", "content": "one\ntwo\n"})

    assert result == ToolResult.ok("Created Docs/New.txt (2 lines)")
    assert (project_dir / "Docs" / "New.txt").read_text(encoding="utf-8") == "one\ntwo\n"


def test_create_file_refuses_existing(project_dir, sample_file):
    tool = CreateFileTool(project_dir)
    result = tool.execute({"name": "Source/a.txt", "content": "x"})
    assert not result.success
    assert result.output.startswith("File already exists: ")
    assert sample_file.read_text(encoding="utf-8").startswith("a\n")

    assert tool.execute({"name": "Source/a.txt", "content": "x", "overwrite": True}).success
    assert sample_file.read_text(encoding="utf-8") == "x"


def test_builtin_tools(project_dir):
    assert ToolRegistry(builtin_tools(project_dir)).tool_names() == ["read_file", "create_file"]


def test_registry_runs_tool_with_json_args():
    tool = SpyTool(name="X", output="done")
    registry = ToolRegistry([tool])

    assert registry.execute("X", '{"a":1}') == ToolResult.ok("done")
    assert registry.execute("X", {"b": 2}) == ToolResult.ok("done")
    assert registry.execute("X", "") == ToolResult.ok("done")
    assert tool.calls == [{"a": 1}, {"b": 2}, {}]


def test_registry_unknown_tool():
    assert ToolRegistry().execute("nope", "{}") == ToolResult.fail("Unknown tool: nope")


@pytest.mark.parametrize("args", ["{not json", "[1, 2]", '"text"'])
def test_registry_rejects_bad_arguments(args):
    tool = SpyTool(name="X")
    result = ToolRegistry([tool]).execute("X", args)

    assert result == ToolResult.fail("Failed to parse arguments for tool 'X'")
    assert tool.calls == []


def test_registry_reports_tool_exception():
    registry = ToolRegistry([SpyTool(name="boom", error=RuntimeError("kaboom"))])
    assert registry.execute("boom", "{}") == ToolResult.fail("Error executing tool boom: kaboom")


def test_registry_passes_through_failed_result():
    registry = ToolRegistry([SpyTool(name="X", output="nope", success=False)])
    assert registry.execute("X", "{}") == ToolResult.fail("nope")


def test_register_overwrites_same_name():
    first, second = SpyTool(name="X", output="first"), SpyTool(name="X", output="second")
    registry = ToolRegistry([first, second])

    assert len(registry) == 1
    assert registry.get_tool("X") is second
    assert registry.has_tool("X")
    assert not registry.has_tool("Y")
