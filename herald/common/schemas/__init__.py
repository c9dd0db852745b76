"""
Herald Schemas

Content parts handed to the agent runtime and the per-message metadata
they are built from.
"""

from .parts import AgentMessage, ContentPart, FilePart, TextPart, dump_parts
from .metadata import (
    ChannelMention,
    TeamMention,
    UserMention,
    Mention,
    Downloaded,
    TooLarge,
    NotSupported,
    NoUrl,
    FetchError,
    FileOutcome,
    FileAttachment,
    MessageMetadata,
)

__all__ = [
    "AgentMessage",
    "ContentPart",
    "FilePart",
    "TextPart",
    "dump_parts",
    "ChannelMention",
    "TeamMention",
    "UserMention",
    "Mention",
    "Downloaded",
    "TooLarge",
    "NotSupported",
    "NoUrl",
    "FetchError",
    "FileOutcome",
    "FileAttachment",
    "MessageMetadata",
]
