"""
Batched Entity Resolver

Resolves every user, channel and team referenced by a batch of messages
with one directory lookup per unique id, then rebuilds each message's
mention list in document order.

A failed lookup (network error, not found, missing scope) only means that
entity is absent: its mentions are dropped and sibling lookups carry on.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

from ..common.schemas.metadata import ChannelMention, Mention, TeamMention, UserMention
from .mentions import extract_mentions_from_blocks, mention_id

logger = logging.getLogger("herald.slack.resolver")


def _string(message: Dict[str, Any], key: str) -> str:
    value = message.get(key)
    return value if isinstance(value, str) else ""


class DirectoryClient(Protocol):
    """Directory lookups; each raises when the entity cannot be fetched"""

    async def conversations_info(self, channel: str) -> Dict[str, Any]:
        ...

    async def team_info(self, team: str) -> Dict[str, Any]:
        ...

    async def users_info(self, user: str) -> Dict[str, Any]:
        ...


@dataclass
class ResolvedEntities:
    """Per-message resolution result"""
    mentions: List[Mention] = field(default_factory=list)
    user: Optional[Dict[str, Any]] = None
    channel: Optional[Dict[str, Any]] = None


class EntityResolver:
    """
    Resolves mentions, senders and channels for a batch of messages.

    Lookups run concurrently, bounded by ``max_concurrency``. Results are
    cached for the duration of one ``resolve`` call only.
    """

    def __init__(self, client: DirectoryClient, max_concurrency: int = 16):
        self._client = client
        self._max_concurrency = max(1, max_concurrency)

    async def resolve(self, messages: List[Dict[str, Any]]) -> List[ResolvedEntities]:
        """
        Resolve entities for every message.

        Args:
            messages: Slack message dicts (``blocks``, ``user``, ``channel``)

        Returns:
            One ResolvedEntities per input message, in input order
        """
        # First pass: collect unique ids per kind (dicts keep insertion order)
        channel_ids: Dict[str, None] = {}
        team_ids: Dict[str, None] = {}
        user_ids: Dict[str, None] = {}
        message_mentions: List[List[Dict[str, Any]]] = []

        for message in messages:
            channel = _string(message, "channel")
            if channel:
                channel_ids[channel] = None

            mentions = extract_mentions_from_blocks(message.get("blocks") or [])
            message_mentions.append(mentions)
            for mention in mentions:
                kind = mention.get("type")
                entity_id = mention_id(mention)
                if not entity_id:
                    continue
                if kind == "channel":
                    channel_ids[entity_id] = None
                elif kind == "team":
                    team_ids[entity_id] = None
                elif kind == "user":
                    user_ids[entity_id] = None

            sender = _string(message, "user")
            if sender:
                user_ids[sender] = None

        semaphore = asyncio.Semaphore(self._max_concurrency)
        channels, teams, users = await asyncio.gather(
            self._lookup_all("channel", list(channel_ids), self._client.conversations_info, semaphore),
            self._lookup_all("team", list(team_ids), self._client.team_info, semaphore),
            self._lookup_all("user", list(user_ids), self._client.users_info, semaphore),
        )

        # Second pass: rebuild mention lists in document order
        results: List[ResolvedEntities] = []
        for message, mentions in zip(messages, message_mentions):
            resolved: List[Mention] = []
            seen = set()
            for mention in mentions:
                kind = mention.get("type")
                entity_id = mention_id(mention)
                if not entity_id or entity_id in seen:
                    continue
                seen.add(entity_id)

                if kind == "channel" and entity_id in channels:
                    resolved.append(ChannelMention(id=entity_id, channel=channels[entity_id]))
                elif kind == "team" and entity_id in teams:
                    resolved.append(TeamMention(id=entity_id, team=teams[entity_id]))
                elif kind == "user" and entity_id in users:
                    resolved.append(UserMention(id=entity_id, user=users[entity_id]))

            results.append(
                ResolvedEntities(
                    mentions=resolved,
                    user=users.get(_string(message, "user")),
                    channel=channels.get(_string(message, "channel")),
                )
            )

        return results

    async def _lookup_all(
        self,
        kind: str,
        ids: List[str],
        fetch: Callable[[str], Awaitable[Dict[str, Any]]],
        semaphore: asyncio.Semaphore,
    ) -> Dict[str, Dict[str, Any]]:
        """Look up every id; the returned map only holds ids that resolved"""
        found = await asyncio.gather(*(self._lookup(kind, i, fetch, semaphore) for i in ids))
        return {entity_id: entity for entity_id, entity in zip(ids, found) if entity is not None}

    async def _lookup(
        self,
        kind: str,
        entity_id: str,
        fetch: Callable[[str], Awaitable[Dict[str, Any]]],
        semaphore: asyncio.Semaphore,
    ) -> Optional[Dict[str, Any]]:
        async with semaphore:
            try:
                return await fetch(entity_id)
            except Exception as e:
                logger.debug("Could not resolve %s %s: %s", kind, entity_id, e)
                return None
