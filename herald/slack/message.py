"""
Slack Event -> Agent Message

Wraps metadata extraction and part building for a single Slack event.
Extract metadata and build parts yourself for full customization.
"""

import asyncio
import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from ..common.config import DEFAULT_MAX_FILE_SIZE
from ..common.schemas.metadata import MessageMetadata
from ..common.schemas.parts import AgentMessage
from .metadata import extract_messages_metadata
from .parts import create_parts_from_metadata

logger = logging.getLogger("herald.slack.message")

SUPPORTED_EVENT_TYPES = {
    "app_mention",
    "assistant_thread_started",
    "file_shared",
    "link_shared",
    "member_joined_channel",
    "message",
    "reaction_added",
    "reaction_removed",
}


def message_fields_from_event(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Locate channel/ts/thread_ts/text for events that nest them elsewhere.

    Message-like events (``message``, ``app_mention``, ...) already carry
    them at the top level.
    """
    event_type = event.get("type")
    if event_type == "assistant_thread_started":
        thread = event.get("assistant_thread") or {}
        return {
            "channel": thread.get("channel_id"),
            "thread_ts": thread.get("thread_ts"),
            "ts": event.get("event_ts"),
        }
    if event_type == "file_shared":
        return {"channel": event.get("channel_id"), "ts": event.get("event_ts")}
    if event_type in ("reaction_added", "reaction_removed"):
        return {"channel": (event.get("item") or {}).get("channel"), "ts": event.get("event_ts")}
    return event


async def _bot_user_id(client: Any) -> Optional[str]:
    try:
        identity = await client.auth_test()
    except Exception as e:
        logger.info("auth.test failed, bot identity unknown: %s", e)
        return None
    return identity.get("user_id")


async def create_message_from_event(
    client: Any,
    event: Dict[str, Any],
    supported_file_types: Optional[List[str]] = None,
    max_file_size: int = DEFAULT_MAX_FILE_SIZE,
    max_concurrency: int = 16,
) -> Tuple[AgentMessage, MessageMetadata]:
    """
    Create an agent message from a Slack event.

    Args:
        client: Slack client
        event: The ``event`` object of an Events API callback
        supported_file_types: Mimetypes to download
        max_file_size: Largest file to download, in bytes
        max_concurrency: Bound on in-flight lookups and downloads

    Returns:
        (message, metadata)
    """
    if event.get("type") not in SUPPORTED_EVENT_TYPES:
        raise ValueError(f"Unsupported Slack event type: {event.get('type')}")

    message_id = event.get("client_msg_id") or str(uuid.uuid4())

    bot_user_id, extracted = await asyncio.gather(
        _bot_user_id(client),
        extract_messages_metadata(
            client,
            [event],
            supported_file_types=supported_file_types,
            max_file_size=max_file_size,
            max_concurrency=max_concurrency,
        ),
    )
    if not extracted:
        raise RuntimeError("Failed to extract message metadata")
    _, metadata = extracted[0]

    parts = create_parts_from_metadata(
        metadata,
        message_fields_from_event(event),
        bot_user_id=bot_user_id,
    )
    return AgentMessage(id=message_id, parts=parts), metadata
