"""
Part Builder

Turns a message and its metadata into the ordered content parts handed to
the agent:

1. Slack metadata (timestamps, channel, sender)
2. Thread instruction
3. Message body
4. Mention legend
5. Embedded files
6. Notices for files that could not be embedded
"""

from typing import Any, Dict, List, Optional

from ..common.schemas.metadata import (
    ChannelMention,
    Downloaded,
    FetchError,
    FileAttachment,
    MessageMetadata,
    NoUrl,
    NotSupported,
    TeamMention,
    TooLarge,
    UserMention,
)
from ..common.schemas.parts import ContentPart, FilePart, TextPart


def _display_name(user: Dict[str, Any]) -> str:
    return user.get("real_name") or (user.get("profile") or {}).get("display_name") or "N/A"


def should_respond_in_thread(metadata: MessageMetadata, bot_user_id: Optional[str]) -> bool:
    """The bot was mentioned, outside of a DM or group DM"""
    mentioned = any(
        isinstance(m, UserMention) and m.id == bot_user_id
        for m in metadata.mentions
    ) if bot_user_id else False

    channel = metadata.channel or {}
    if channel.get("is_im") or channel.get("is_mpim"):
        return False
    return mentioned


def format_mention_legend(metadata: MessageMetadata, bot_user_id: Optional[str]) -> str:
    lines = []
    for mention in metadata.mentions:
        if isinstance(mention, ChannelMention):
            lines.append(f"Channel: {mention.id} => {mention.channel.get('name')}")
        elif isinstance(mention, TeamMention):
            lines.append(f"Team: {mention.id} => {mention.team.get('name')}")
        elif isinstance(mention, UserMention):
            who = f"{mention.id} => {mention.user.get('name')} ({_display_name(mention.user)})"
            if bot_user_id and mention.id == bot_user_id:
                lines.append(f"Bot (this is you!): {who}")
            elif mention.user.get("is_bot"):
                lines.append(f"Bot: {who}")
            else:
                lines.append(f"User: {who}")

    mention_lines = "\n".join(lines)
    return (
        "Mentions found in the message:\n"
        f"{mention_lines}\n\n"
        "Use these mentions to tag channels, teams, and users if relevant.\n"
        "Be sure to use the <@id> format for mentions."
    )


def format_file_notice(attachment: FileAttachment) -> str:
    """Explain why an attachment is not embedded"""
    result = attachment.result
    name = attachment.name
    if isinstance(result, FetchError):
        return f"The user attached file {name}, but it could not be downloaded. Error: {result.message}"
    if isinstance(result, TooLarge):
        return f"The user attached file {name}, but it was too large ({result.size} bytes) to download."
    if isinstance(result, NotSupported):
        return f"The user attached file {name}, but the file type ({attachment.mimetype}) is not supported."
    if isinstance(result, NoUrl):
        return f"The user attached file {name}, but no download URL was available."
    return f"The user attached file {name}, but it was not downloaded."


def create_parts_from_metadata(
    metadata: MessageMetadata,
    message: Dict[str, Any],
    bot_user_id: Optional[str] = None,
) -> List[ContentPart]:
    """
    Build content parts for one message.

    Args:
        metadata: Extracted message metadata
        message: Raw fields: ``channel``, ``ts``, ``thread_ts``, ``text``
        bot_user_id: The bot's own user id, so it can recognize itself

    Returns:
        Ordered content parts
    """
    parts: List[ContentPart] = []

    sender = ""
    if metadata.user:
        user = metadata.user
        sender = f"From User: {user.get('name')} (<@{user.get('id') or 'N/A'}>) ({_display_name(user)})"

    created = metadata.created_at.strftime("%m/%d/%Y, %I:%M:%S %p %Z")
    parts.append(TextPart(text=(
        "You *must* respond by sending a Slack message. "
        "Slack message metadata (use for responding and reacting):\n\n"
        f"Timestamp Formatted: {created}\n"
        f"Timestamp Raw: {message.get('ts') or 'N/A'}\n"
        f"Thread Timestamp: {message.get('thread_ts') or 'N/A'}\n"
        f"Channel ID: {message.get('channel') or 'N/A'}\n"
        f"{sender}\n"
    )))

    if should_respond_in_thread(metadata, bot_user_id):
        parts.append(TextPart(text="You *must* reply with using the message's timestamp."))
    else:
        parts.append(TextPart(
            text="You *may* reply with using the message's timestamp or directly to the channel."
        ))

    parts.append(TextPart(text=f"Slack Message Content:\n{message.get('text') or ''}"))
    parts.append(TextPart(text=format_mention_legend(metadata, bot_user_id)))

    notices: List[ContentPart] = []
    for attachment in metadata.files:
        if isinstance(attachment.result, Downloaded):
            parts.append(FilePart.from_bytes(attachment.result.content, attachment.mimetype))
        else:
            notices.append(TextPart(text=format_file_notice(attachment)))
    parts.extend(notices)

    return parts
