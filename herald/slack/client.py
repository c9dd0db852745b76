"""
Slack Web API Client

Thin async client over the handful of Slack Web API methods the event layer
needs: directory lookups (channels, teams, users), bot identity, assistant
thread status, and authenticated file downloads.
"""

import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger("herald.slack.client")

SLACK_API_URL = "https://slack.com/api"


class SlackApiError(Exception):
    """Slack answered with ``ok: false`` or an unusable response."""

    def __init__(self, method: str, error: str):
        super().__init__(f"{method} failed: {error}")
        self.method = method
        self.error = error


class SlackClient:
    """
    Async Slack Web API client.

    Usage:
        client = SlackClient(bot_token="xoxb-...")
        channel = await client.conversations_info("C123")
        await client.close()
    """

    def __init__(
        self,
        bot_token: str,
        base_url: str = SLACK_API_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Slack client.

        Args:
            bot_token: Bot user OAuth token (xoxb-...)
            base_url: Web API base URL
            timeout: Request timeout in seconds, for API calls and downloads
            transport: Custom httpx transport (tests)
        """
        self.token = bot_token
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            headers={"Authorization": f"Bearer {bot_token}"},
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def _call(self, method: str, **params: Any) -> Dict[str, Any]:
        """Call a Web API method and return the decoded body"""
        response = await self._client.post(f"{self._base_url}/{method}", data=params)
        response.raise_for_status()
        data = response.json()
        if not data.get("ok"):
            raise SlackApiError(method, data.get("error", "unknown_error"))
        return data

    async def conversations_info(self, channel: str) -> Dict[str, Any]:
        data = await self._call("conversations.info", channel=channel)
        return data["channel"]

    async def team_info(self, team: str) -> Dict[str, Any]:
        data = await self._call("team.info", team=team)
        return data["team"]

    async def users_info(self, user: str) -> Dict[str, Any]:
        data = await self._call("users.info", user=user)
        return data["user"]

    async def auth_test(self) -> Dict[str, Any]:
        """Identity of the token owner (``user_id`` is the bot's user id)"""
        return await self._call("auth.test")

    async def set_thread_status(self, channel_id: str, thread_ts: str, status: str) -> None:
        await self._call(
            "assistant.threads.setStatus",
            channel_id=channel_id,
            thread_ts=thread_ts,
            status=status,
        )

    async def download(self, url: str) -> httpx.Response:
        """Fetch a private file URL with the bot token, following redirects"""
        return await self._client.get(url, follow_redirects=True)

    async def close(self) -> None:
        await self._client.aclose()
