"""
Message Metadata Extractor

Combines entity resolution and file fetching for a batch of messages into
one MessageMetadata per message.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from ..common.config import DEFAULT_MAX_FILE_SIZE
from ..common.schemas.metadata import MessageMetadata
from .files import FileFetcher
from .resolver import EntityResolver

logger = logging.getLogger("herald.slack.metadata")


def parse_timestamp(ts: Optional[str]) -> datetime:
    """
    Parse a Slack ``ts`` ("1700000000.123456", seconds since epoch).

    Falls back to now when the timestamp is missing or unparsable.
    """
    if ts:
        try:
            return datetime.fromtimestamp(float(ts), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError, OSError):
            logger.debug("Unparsable message timestamp %r", ts)
    return datetime.now(timezone.utc)


async def extract_messages_metadata(
    client: Any,
    messages: List[Dict[str, Any]],
    supported_file_types: Optional[List[str]] = None,
    max_file_size: int = DEFAULT_MAX_FILE_SIZE,
    max_concurrency: int = 16,
) -> List[Tuple[Dict[str, Any], MessageMetadata]]:
    """
    Extract metadata from messages.

    - User/team/channel mentions
    - File attachments
    - Sender information
    - Timestamp

    Args:
        client: Slack client (directory lookups and file downloads)
        messages: Slack message dicts
        supported_file_types: Mimetypes to download (default: common images,
            text, JSON and PDF)
        max_file_size: Largest file to download, in bytes
        max_concurrency: Upper bound on in-flight lookups and downloads, each

    Returns:
        ``(message, metadata)`` pairs in input order
    """
    resolver = EntityResolver(client, max_concurrency=max_concurrency)
    fetcher = FileFetcher(
        client,
        supported_file_types=supported_file_types,
        max_file_size=max_file_size,
        max_concurrency=max_concurrency,
    )

    resolved, *files = await asyncio.gather(
        resolver.resolve(messages),
        *(fetcher.fetch(message.get("files") or []) for message in messages),
    )

    results: List[Tuple[Dict[str, Any], MessageMetadata]] = []
    for message, entities, attachments in zip(messages, resolved, files):
        metadata = MessageMetadata(
            created_at=parse_timestamp(message.get("ts")),
            mentions=entities.mentions,
            files=attachments,
            user=entities.user,
            channel=entities.channel,
        )
        results.append((message, metadata))

    return results
