"""Mention extraction from Slack rich-text blocks."""

from typing import Any, Dict, List

MENTION_TYPES = ("user", "channel", "team", "usergroup")

MENTION_ID_FIELDS = {
    "user": "user_id",
    "channel": "channel_id",
    "team": "team_id",
    "usergroup": "usergroup_id",
}


def _elements(value: Any) -> List[Dict[str, Any]]:
    """Dict items of an ``elements`` array; anything else is skipped"""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def extract_mentions_from_blocks(blocks: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Collect mention elements from message blocks, in document order.

    Only ``rich_text`` blocks are inspected, and within them only the inline
    elements of ``rich_text_section`` children. Duplicates are kept; callers
    decide how to dedupe.

    Args:
        blocks: The message's ``blocks`` array

    Returns:
        Mention elements such as ``{"type": "user", "user_id": "U123"}``
    """
    mentions: List[Dict[str, Any]] = []
    for block in _elements(blocks):
        if block.get("type") != "rich_text":
            continue
        for element in _elements(block.get("elements")):
            if element.get("type") != "rich_text_section":
                continue
            for subelement in _elements(element.get("elements")):
                if subelement.get("type") in MENTION_TYPES:
                    mentions.append(subelement)
    return mentions


def mention_id(mention: Dict[str, Any]) -> str:
    """Platform id carried by a mention element, or "" if it has none"""
    kind = mention.get("type")
    field = MENTION_ID_FIELDS.get(kind) if isinstance(kind, str) else None
    value = mention.get(field) if field else None
    return value if isinstance(value, str) else ""
