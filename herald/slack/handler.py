"""
Slack Event Handler

Handles Slack Events API callbacks and delivers them to the agent.

Processes:
- app_mention events (the bot was mentioned in a channel)
- message events in direct messages

Ignores:
- message_changed (Slack emits these when the bot edits its own reply)
- bot messages
- channel messages that do not mention the bot
"""

import hmac
import hashlib
import logging
import time
from typing import Any, Dict, List, Optional

from ..common.config import DEFAULT_MAX_FILE_SIZE
from ..common.notifier import AgentNotifier
from .message import create_message_from_event

logger = logging.getLogger("herald.slack.handler")

SIGNATURE_MAX_AGE_SEC = 300
IGNORED_MESSAGE_SUBTYPES = {"message_changed", "bot_message"}


class SlackEventHandler:
    """
    Handler for Slack Events API webhooks.

    Usage:
        handler = SlackEventHandler(client, notifier, signing_secret="...")
        if handler.verify_signature(body, signature, timestamp):
            event = payload["event"]
            if handler.should_handle(event):
                await handler.handle_event(event)
    """

    def __init__(
        self,
        client: Any,
        notifier: AgentNotifier,
        signing_secret: str = "",
        supported_file_types: Optional[List[str]] = None,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
        max_concurrency: int = 16,
    ):
        """
        Initialize Slack handler.

        Args:
            client: Slack client used for lookups, downloads and thread status
            notifier: Agent runtime the messages are delivered to
            signing_secret: Slack signing secret for verification
            supported_file_types: Mimetypes to download
            max_file_size: Largest file to download, in bytes
            max_concurrency: Bound on in-flight lookups and downloads
        """
        self._client = client
        self._notifier = notifier
        self._signing_secret = signing_secret
        self._supported_file_types = supported_file_types
        self._max_file_size = max_file_size
        self._max_concurrency = max_concurrency

    def verify_signature(
        self,
        body: bytes,
        signature: str,
        timestamp: str,
        now: Optional[float] = None,
    ) -> bool:
        """
        Verify Slack request signature.

        Args:
            body: Raw request body
            signature: X-Slack-Signature header
            timestamp: X-Slack-Request-Timestamp header
            now: Current unix time (default: time.time())

        Returns:
            True if signature is valid
        """
        if not self._signing_secret:
            logger.warning("Slack signing secret not configured, rejecting request")
            return False

        if not signature or not timestamp:
            return False

        # Check timestamp is recent (within 5 minutes)
        try:
            ts = int(timestamp)
        except ValueError:
            return False
        current = time.time() if now is None else now
        if abs(current - ts) > SIGNATURE_MAX_AGE_SEC:
            return False

        sig_basestring = b"v0:" + timestamp.encode("utf-8") + b":" + body
        expected_sig = "v0=" + hmac.new(
            self._signing_secret.encode("utf-8"),
            sig_basestring,
            hashlib.sha256
        ).hexdigest()

        return hmac.compare_digest(expected_sig, signature)

    def is_url_verification(self, raw_data: Dict[str, Any]) -> bool:
        """Check if request is URL verification"""
        return raw_data.get("type") == "url_verification"

    def get_challenge(self, raw_data: Dict[str, Any]) -> Optional[str]:
        """Get challenge for URL verification"""
        if self.is_url_verification(raw_data):
            return raw_data.get("challenge")
        return None

    def should_handle(self, event: Dict[str, Any]) -> bool:
        """Check if an event should be delivered to the agent"""
        event_type = event.get("type")
        if event_type == "app_mention":
            return True
        if event_type != "message":
            return False
        if event.get("subtype") in IGNORED_MESSAGE_SUBTYPES or event.get("bot_id"):
            return False
        # Channel messages arrive as app_mention; only DMs are handled here
        return event.get("channel_type") == "im"

    @staticmethod
    def thread_ts(event: Dict[str, Any]) -> str:
        return event.get("thread_ts") or event.get("ts") or ""

    def conversation_key(self, event: Dict[str, Any]) -> List[str]:
        """One agent conversation per Slack thread"""
        return ["slack", event.get("channel") or "", self.thread_ts(event)]

    async def handle_event(self, event: Dict[str, Any]) -> None:
        """
        Deliver one event to the agent.

        Failures are reported back to the user through the assistant thread
        status rather than raised; this runs after Slack has been answered.
        """
        channel = event.get("channel") or ""
        thread_ts = self.thread_ts(event)

        try:
            await self._client.set_thread_status(channel, thread_ts, "is typing...")
            chat_id = await self._notifier.upsert_chat(self.conversation_key(event))
            message, metadata = await create_message_from_event(
                self._client,
                event,
                supported_file_types=self._supported_file_types,
                max_file_size=self._max_file_size,
                max_concurrency=self._max_concurrency,
            )
            channel_info = metadata.channel or {}
            message.metadata = {
                "type": "slack",
                "shared_channel": bool(channel_info.get("is_shared")),
                "ext_shared_channel": bool(channel_info.get("is_ext_shared")),
                "channel_name": channel_info.get("name") or "",
            }
            await self._notifier.send_messages(chat_id, [message])
        except Exception as e:
            logger.exception("Failed to deliver Slack event in %s/%s", channel, thread_ts)
            try:
                await self._client.set_thread_status(channel, thread_ts, f"failed to chat: {e}")
            except Exception as status_error:
                logger.warning("Could not report failure to Slack: %s", status_error)
