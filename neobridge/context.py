from __future__ import annotations

from collections.abc import Sequence
from os import PathLike
from pathlib import Path

from neobridge.log import logger


def load_context_file(path: str, project_dir: PathLike | str) -> str:
    """Content of an attached context file, or a bracketed placeholder when it cannot be read."""
    candidate = Path(path)
    # Absolute paths that do not exist on disk are asset references (e.g. /Game/Maps/Main).
    if path.startswith("/") and not candidate.exists():
        return f"[Asset: {path}]"

    full_path = candidate if candidate.is_absolute() else Path(project_dir) / candidate
    try:
        return full_path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.warning(f"Could not load context file {full_path}: {e}")
        return f"[Could not load file: {path}]"


def build_prompt(user_text: str, context_files: Sequence[str], project_dir: PathLike | str) -> str:
    """Prefix ``user_text`` with the contents of the attached context files."""
    if not context_files:
        return user_text

    prefix = "".join(
        f"--- File: {path} ---\n{load_context_file(path, project_dir)}\n\n" for path in context_files
    )
    return f"{prefix}--- User Message ---\n{user_text}"
