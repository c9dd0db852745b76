"""
Message Metadata

Derived, per-message view of a chat message: who sent it, where, which
entities it mentions and what happened to each attached file. Rebuilt for
every message and never persisted.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union


# ============================================================================
# Mentions
# ============================================================================

@dataclass
class ChannelMention:
    """Resolved channel reference"""
    id: str
    channel: Dict[str, Any]
    type: str = field(default="channel", init=False)


@dataclass
class TeamMention:
    """Resolved team (workspace) reference"""
    id: str
    team: Dict[str, Any]
    type: str = field(default="team", init=False)


@dataclass
class UserMention:
    """Resolved user reference"""
    id: str
    user: Dict[str, Any]
    type: str = field(default="user", init=False)


Mention = Union[ChannelMention, TeamMention, UserMention]


# ============================================================================
# File outcomes
# ============================================================================

@dataclass
class Downloaded:
    content: bytes
    type: str = field(default="downloaded", init=False)


@dataclass
class TooLarge:
    size: int
    type: str = field(default="too_large", init=False)


@dataclass
class NotSupported:
    type: str = field(default="not_supported", init=False)


@dataclass
class NoUrl:
    type: str = field(default="no_url", init=False)


@dataclass
class FetchError:
    message: str
    type: str = field(default="error", init=False)


FileOutcome = Union[Downloaded, TooLarge, NotSupported, NoUrl, FetchError]


@dataclass
class FileAttachment:
    """One attached file and the outcome of trying to fetch it"""
    file: Dict[str, Any]
    result: FileOutcome

    def _field(self, key: str) -> str:
        value = self.file.get(key) if isinstance(self.file, dict) else None
        return value if isinstance(value, str) else ""

    @property
    def name(self) -> str:
        return self._field("name") or self._field("id") or "unnamed"

    @property
    def mimetype(self) -> str:
        return self._field("mimetype")


# ============================================================================
# Metadata record
# ============================================================================

@dataclass
class MessageMetadata:
    """Complete metadata for one message"""
    created_at: datetime
    mentions: List[Mention] = field(default_factory=list)
    files: List[FileAttachment] = field(default_factory=list)
    user: Optional[Dict[str, Any]] = None
    channel: Optional[Dict[str, Any]] = None
