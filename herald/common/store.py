"""
PR/Issue Association Store

Maps an external repository object (numeric pull request id, or GraphQL node
id for issues and comments) to the internal conversation id that created it.
Follow-up webhooks (reviews, comments, CI results) use this mapping to find
the conversation to notify.

The webhook handlers only ever read; writes come from the flow that opens a
pull request on behalf of a conversation (see ``associate_pull_request``).
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

from .config import ASSOCIATIONS_PATH

logger = logging.getLogger("herald.common.store")

KEY_PREFIX = "chat-id-for-pr-"


def association_key(ref: Union[int, str]) -> str:
    """Store key for a pull request id or node id"""
    return f"{KEY_PREFIX}{ref}"


class AssociationStore(Protocol):
    """Generic async key/value store"""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str) -> None:
        ...


class MemoryAssociationStore:
    """In-process store. Contents are lost on restart."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileAssociationStore:
    """
    Store persisted to a JSON object on disk.

    The file is re-read on every ``get`` so that associations written by
    another process (the PR-creation flow) are visible without a restart.
    """

    def __init__(self, path: Optional[Path] = None):
        """
        Initialize the store.

        Args:
            path: Path to the JSON file (default: ~/.herald/associations.json)
        """
        self._path = Path(path) if path else ASSOCIATIONS_PATH
        self._write_lock = asyncio.Lock()

    def _load(self) -> Dict[str, str]:
        """Load all associations from disk"""
        if not self._path.exists():
            return {}

        try:
            with open(self._path) as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Failed to load associations from %s: %s", self._path, e)
            return {}

        if not isinstance(data, dict):
            logger.warning("Ignoring malformed associations file %s", self._path)
            return {}
        return data

    def _save(self, data: Dict[str, str]) -> None:
        """Save all associations to disk"""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "w") as f:
            json.dump(data, f, indent=2, sort_keys=True)

    async def get(self, key: str) -> Optional[str]:
        data = await asyncio.to_thread(self._load)
        value = data.get(key)
        return str(value) if value is not None else None

    async def set(self, key: str, value: str) -> None:
        # Read-modify-write; serialized within this process
        async with self._write_lock:
            data = await asyncio.to_thread(self._load)
            data[key] = value
            await asyncio.to_thread(self._save, data)


async def associate_pull_request(
    store: AssociationStore,
    chat_id: str,
    pr_id: Optional[int] = None,
    node_id: Optional[str] = None,
) -> None:
    """
    Record that a pull request belongs to a conversation.

    Both keys are written because GitHub identifies the same pull request by
    its numeric id in pull_request/check_run payloads, but only by node id in
    issue_comment payloads (the issue id differs from the pull request id).
    """
    if pr_id is None and node_id is None:
        raise ValueError("pr_id or node_id is required")
    if pr_id is not None:
        await store.set(association_key(pr_id), chat_id)
    if node_id is not None:
        await store.set(association_key(node_id), chat_id)
