"""
Slack Integration

Normalizes Slack messages into agent content parts:
- EntityResolver: batched user/channel/team lookups for mentions
- FileFetcher: policy-checked attachment downloads
- extract_messages_metadata: both of the above, per message
- create_parts_from_metadata: ordered content parts for the agent
- SlackEventHandler: Events API verification, filtering and delivery
"""

from .client import SlackApiError, SlackClient
from .files import FileFetcher
from .formatting import FORMATTING_RULES, format_message
from .handler import SlackEventHandler
from .mentions import extract_mentions_from_blocks
from .message import create_message_from_event
from .metadata import extract_messages_metadata
from .parts import create_parts_from_metadata, should_respond_in_thread
from .resolver import EntityResolver

__all__ = [
    "SlackApiError",
    "SlackClient",
    "FileFetcher",
    "FORMATTING_RULES",
    "format_message",
    "SlackEventHandler",
    "extract_mentions_from_blocks",
    "create_message_from_event",
    "extract_messages_metadata",
    "create_parts_from_metadata",
    "should_respond_in_thread",
    "EntityResolver",
]
