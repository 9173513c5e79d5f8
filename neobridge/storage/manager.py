from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

from neobridge.log import logger
from neobridge.models.conversation import ConversationMessage, ConversationMetadata, MetadataIndex
from neobridge.storage.store import ConversationStore

DEFAULT_TITLE = "New Conversation"
TITLE_LENGTH = 50


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def derive_title(message: ConversationMessage) -> str | None:
    """Title for a conversation whose first message is ``message``, if it is a user message."""
    if message.role != "user" or not message.content:
        return None
    title = message.content[:TITLE_LENGTH]
    if len(message.content) > TITLE_LENGTH:
        title += "..."
    return title


class ConversationManager:
    """State of the currently open conversation. All writes to the store go through here."""

    index: MetadataIndex
    current_id: int | None

    def __init__(self, store: ConversationStore, clock: Callable[[], datetime] = _utcnow) -> None:
        self.store = store
        self.clock = clock

        self.index = store.load_index()
        self.current_id = None
        self._current_messages: list[ConversationMessage] = []
        logger.info(f"Loaded {len(self.index.conversations)} conversations from {store.base_dir}")

    @property
    def next_id(self) -> int:
        return self.index.next_id

    @property
    def current_messages(self) -> list[ConversationMessage]:
        return list(self._current_messages)

    def get(self, conversation_id: int) -> ConversationMetadata | None:
        return next((meta for meta in self.index.conversations if meta.id == conversation_id), None)

    def create(self, title: str = DEFAULT_TITLE) -> int:
        now = self.clock()
        meta = ConversationMetadata(
            id=self.index.next_id,
            title=title,
            created_at=now,
            updated_at=now,
        )
        self.index.next_id += 1
        self.index.conversations.append(meta)
        self.store.save_index(self.index)
        logger.info(f"Created conversation {meta.id}: {title!r}")

        self.set_current(meta.id)
        return meta.id

    def set_current(self, conversation_id: int | None) -> None:
        if conversation_id == self.current_id:
            return
        if conversation_id is not None and self.get(conversation_id) is None:
            logger.warning(f"Conversation {conversation_id} does not exist")
            return

        self.current_id = conversation_id
        self._current_messages = [] if conversation_id is None else self.store.load_messages(conversation_id)

    def clear_current(self) -> None:
        self.current_id = None
        self._current_messages = []

    def list_conversations(self) -> list[ConversationMetadata]:
        return sorted(self.index.conversations, key=lambda meta: meta.updated_at, reverse=True)

    def load_messages(self, conversation_id: int) -> list[ConversationMessage]:
        return self.store.load_messages(conversation_id)

    def append_message(self, message: ConversationMessage) -> int:
        """Append ``message`` to the current conversation, creating one if needed.

        Returns the id of the conversation the message went to.
        """
        if self.current_id is None:
            self.create(derive_title(message) or DEFAULT_TITLE)

        conversation_id = self.current_id
        self._current_messages.append(message)
        self.store.append_message(conversation_id, message)

        meta = self.get(conversation_id)
        if meta is not None:
            meta.message_count += 1
            meta.updated_at = self.clock()
            if meta.message_count == 1 and (title := derive_title(message)):
                meta.title = title
            self.store.save_index(self.index)
        return conversation_id

    def update_title(self, conversation_id: int, title: str) -> bool:
        meta = self.get(conversation_id)
        if meta is None:
            return False
        meta.title = title
        meta.updated_at = self.clock()
        self.store.save_index(self.index)
        return True

    def delete(self, conversation_id: int) -> None:
        self.store.delete(conversation_id, self.index)
        logger.info(f"Deleted conversation {conversation_id}")
        if self.current_id == conversation_id:
            self.clear_current()
