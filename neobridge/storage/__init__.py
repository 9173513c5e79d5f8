from neobridge.storage.manager import ConversationManager
from neobridge.storage.store import ConversationStore

__all__ = ["ConversationManager", "ConversationStore"]
