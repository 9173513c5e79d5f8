from neobridge.models.conversation import (
    ConversationImage,
    ConversationMessage,
    ConversationMetadata,
    FunctionCall,
    MetadataIndex,
    ToolCallRef,
)
from neobridge.models.request import ChatRequest, ProviderRouting, RequestSettings, ToolResultSubmission

__all__ = [
    "ChatRequest",
    "ConversationImage",
    "ConversationMessage",
    "ConversationMetadata",
    "FunctionCall",
    "MetadataIndex",
    "ProviderRouting",
    "RequestSettings",
    "ToolCallRef",
    "ToolResultSubmission",
]
