"""On-disk conversation log.

Layout::

    <saved>/Conversations/metadata.json
    <saved>/Conversations/conversation_<id>.jsonl

Every message is appended as one compact JSON line with a fresh
open-append-close, so a crash can at worst leave a torn last line, which
the loader drops.
"""

from __future__ import annotations

import os
from os import PathLike
from pathlib import Path

from pydantic import ValidationError

from neobridge.log import logger
from neobridge.models.conversation import ConversationMessage, MetadataIndex


class ConversationStore:
    def __init__(self, base_dir: PathLike | str) -> None:
        self.base_dir = Path(base_dir)
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            logger.exception(f"Failed to create conversations directory {self.base_dir}")

    @property
    def metadata_path(self) -> Path:
        return self.base_dir / "metadata.json"

    def conversation_path(self, conversation_id: int) -> Path:
        return self.base_dir / f"conversation_{conversation_id}.jsonl"

    def load_index(self) -> MetadataIndex:
        if not self.metadata_path.exists():
            return MetadataIndex()
        try:
            index = MetadataIndex.model_validate_json(self.metadata_path.read_bytes())
        except (OSError, ValidationError):
            logger.exception(f"Failed to load conversation metadata from {self.metadata_path}")
            return MetadataIndex()

        highest = max((meta.id for meta in index.conversations), default=0)
        if index.next_id <= highest:
            logger.warning(f"Metadata next_id {index.next_id} is behind existing id {highest}, repairing")
            index.next_id = highest + 1
        return index

    def save_index(self, index: MetadataIndex) -> bool:
        try:
            self.metadata_path.write_text(index.model_dump_json(), encoding="utf-8")
        except OSError:
            logger.exception(f"Failed to write conversation metadata to {self.metadata_path}")
            return False
        return True

    def append_message(self, conversation_id: int, message: ConversationMessage) -> bool:
        path = self.conversation_path(conversation_id)
        try:
            with path.open("ab+") as f:
                # Close off a torn last line so this record starts on its own line.
                if f.seek(0, os.SEEK_END) > 0:
                    f.seek(-1, os.SEEK_END)
                    if f.read(1) != b"\n":
                        f.write(b"\n")
                f.write(message.to_json_line().encode("utf-8") + b"\n")
        except OSError:
            logger.exception(f"Failed to append message to {path}")
            return False
        return True

    def load_messages(self, conversation_id: int) -> list[ConversationMessage]:
        path = self.conversation_path(conversation_id)
        if not path.exists():
            return []

        messages: list[ConversationMessage] = []
        try:
            with path.open("r", encoding="utf-8", errors="replace", newline="\n") as f:
                for line_no, line in enumerate(f, start=1):
                    line = line.rstrip("\r\n")
                    if not line:
                        continue
                    try:
                        messages.append(ConversationMessage.model_validate_json(line))
                    except ValidationError:
                        logger.debug(f"Skipping unreadable line {line_no} of {path}")
        except OSError:
            logger.exception(f"Failed to read conversation log {path}")
            return []
        return messages

    def delete(self, conversation_id: int, index: MetadataIndex) -> None:
        """Drop the metadata entry from ``index``, persist it and unlink the log file."""
        index.conversations = [meta for meta in index.conversations if meta.id != conversation_id]
        self.save_index(index)

        path = self.conversation_path(conversation_id)
        try:
            path.unlink(missing_ok=True)
        except OSError:
            logger.exception(f"Failed to delete conversation log {path}")
