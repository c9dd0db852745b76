"""
Agent Notifier

Delivers normalized messages into agent conversations. The agent runtime
itself is an external service; ``HttpAgentNotifier`` talks to it over HTTP.
"""

import logging
from typing import List, Optional, Protocol, Sequence

import httpx

from .schemas.parts import AgentMessage

logger = logging.getLogger("herald.common.notifier")


class AgentNotifierError(Exception):
    """Error delivering to the agent runtime."""
    pass


class AgentNotifier(Protocol):
    """Interface of the agent runtime as seen by the event handlers"""

    async def upsert_chat(self, key: Sequence[str]) -> str:
        """Return the conversation id for ``key``, creating it if needed"""
        ...

    async def send_messages(self, chat_id: str, messages: List[AgentMessage]) -> None:
        """Append messages to a conversation"""
        ...


class HttpAgentNotifier:
    """
    Agent runtime client over HTTP.

    Endpoints:
    - POST {runtime_url}/chats                  {"key": [...]} -> {"id": "..."}
    - POST {runtime_url}/chats/{id}/messages    {"messages": [...]}

    Usage:
        notifier = HttpAgentNotifier("https://agents.internal", api_token="...")
        chat_id = await notifier.upsert_chat(["slack", channel, thread_ts])
        await notifier.send_messages(chat_id, [message])
        await notifier.close()
    """

    def __init__(
        self,
        runtime_url: str,
        api_token: str = "",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the notifier.

        Args:
            runtime_url: Base URL of the agent runtime API
            api_token: Bearer token for the runtime (optional)
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests)
        """
        headers = {"Authorization": f"Bearer {api_token}"} if api_token else {}
        self._client = httpx.AsyncClient(
            base_url=runtime_url.rstrip("/"),
            headers=headers,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def upsert_chat(self, key: Sequence[str]) -> str:
        response = await self._client.post("/chats", json={"key": list(key)})
        if response.is_error:
            raise AgentNotifierError(
                f"Chat upsert failed ({response.status_code}): {response.text}"
            )
        chat_id = response.json().get("id")
        if not chat_id:
            raise AgentNotifierError(f"Chat upsert returned no id: {response.text}")
        return str(chat_id)

    async def send_messages(self, chat_id: str, messages: List[AgentMessage]) -> None:
        payload = {
            "messages": [m.model_dump(mode="json", by_alias=True) for m in messages]
        }
        response = await self._client.post(f"/chats/{chat_id}/messages", json=payload)
        if response.is_error:
            raise AgentNotifierError(
                f"Sending messages to {chat_id} failed ({response.status_code}): {response.text}"
            )
        logger.info("Delivered %d message(s) to chat %s", len(messages), chat_id)

    async def close(self) -> None:
        await self._client.aclose()
