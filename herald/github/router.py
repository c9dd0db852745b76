"""
GitHub Webhook Router

Authenticates a webhook delivery and dispatches it to the matching handler.

Status mapping:
- 401: a required header is missing or the signature does not verify
- 400: the verified body is not a JSON object
- 200: handled, or deliberately ignored (unknown event/action pairs included,
       so new GitHub event variants never break delivery)
- 500: a handler raised; GitHub will redeliver
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple

from ..common.notifier import AgentNotifier
from ..common.store import AssociationStore
from . import handlers
from .signature import verify_signature

logger = logging.getLogger("herald.github.router")

DELIVERY_HEADER = "x-github-delivery"
EVENT_HEADER = "x-github-event"
SIGNATURE_HEADER = "x-hub-signature-256"


class WebhookRoute(str, Enum):
    """Every (event, action) combination the router acts on"""
    PULL_REQUEST_CLOSED = "pull_request.closed"
    PULL_REQUEST_REVIEW = "pull_request_review"
    PULL_REQUEST_REVIEW_COMMENT = "pull_request_review_comment"
    PULL_REQUEST_REVIEW_THREAD = "pull_request_review_thread"
    ISSUE_COMMENT = "issue_comment"
    CHECK_RUN_COMPLETED = "check_run.completed"


# (event, action) -> route; action None matches any action of that event
ROUTES: Dict[Tuple[str, Optional[str]], WebhookRoute] = {
    ("pull_request", "closed"): WebhookRoute.PULL_REQUEST_CLOSED,
    ("pull_request_review", None): WebhookRoute.PULL_REQUEST_REVIEW,
    ("pull_request_review_comment", None): WebhookRoute.PULL_REQUEST_REVIEW_COMMENT,
    ("pull_request_review_thread", None): WebhookRoute.PULL_REQUEST_REVIEW_THREAD,
    ("issue_comment", None): WebhookRoute.ISSUE_COMMENT,
    ("check_run", "completed"): WebhookRoute.CHECK_RUN_COMPLETED,
}

Handler = Callable[..., Awaitable[None]]

HANDLERS: Dict[WebhookRoute, Handler] = {
    WebhookRoute.PULL_REQUEST_CLOSED: handlers.handle_pull_request,
    WebhookRoute.PULL_REQUEST_REVIEW: handlers.handle_pull_request_review,
    WebhookRoute.PULL_REQUEST_REVIEW_COMMENT: handlers.handle_pull_request_review_comment,
    WebhookRoute.PULL_REQUEST_REVIEW_THREAD: handlers.handle_pull_request_review_thread,
    WebhookRoute.ISSUE_COMMENT: handlers.handle_issue_comment,
    WebhookRoute.CHECK_RUN_COMPLETED: handlers.handle_check_run,
}


@dataclass
class WebhookResult:
    """HTTP outcome of one delivery"""
    status: int
    body: str


OK = WebhookResult(200, "OK")
UNAUTHORIZED = WebhookResult(401, "Unauthorized")
INVALID_JSON = WebhookResult(400, "Invalid JSON")
ERROR = WebhookResult(500, "Error")


def base_event(event: str) -> str:
    """``check_run.completed`` -> ``check_run``"""
    return event.split(".", 1)[0]


def classify(event: str, action: Optional[str]) -> Optional[WebhookRoute]:
    """Map an event/action pair to its route, or None if unhandled"""
    if action is not None and not isinstance(action, str):
        return None
    event = base_event(event)
    route = ROUTES.get((event, action))
    if route is None:
        route = ROUTES.get((event, None))
    return route


class GitHubWebhookRouter:
    """
    Entry point for GitHub App webhook deliveries.

    Usage:
        router = GitHubWebhookRouter(store, notifier, webhook_secret="...", bot_login="my-bot")
        result = await router.receive(request.headers, await request.body())
    """

    def __init__(
        self,
        store: AssociationStore,
        notifier: AgentNotifier,
        webhook_secret: str,
        bot_login: str = "",
    ):
        self._store = store
        self._notifier = notifier
        self._webhook_secret = webhook_secret
        self._bot_login = bot_login

    async def receive(self, headers: Mapping[str, str], body: bytes) -> WebhookResult:
        """
        Verify, parse and dispatch one delivery.

        Args:
            headers: Request headers (any casing)
            body: Raw request body

        Returns:
            WebhookResult with the status code and plain-text body to send
        """
        lowered = {k.lower(): v for k, v in headers.items()}
        delivery = lowered.get(DELIVERY_HEADER)
        event = lowered.get(EVENT_HEADER)
        signature = lowered.get(SIGNATURE_HEADER)

        if not delivery or not event or not signature:
            logger.warning("Rejected webhook with missing headers (delivery=%s, event=%s)", delivery, event)
            return UNAUTHORIZED

        if not verify_signature(body, signature, self._webhook_secret):
            logger.warning("Rejected webhook %s: invalid signature", delivery)
            return UNAUTHORIZED

        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Rejected webhook %s: body is not JSON", delivery)
            return INVALID_JSON
        if not isinstance(payload, dict):
            logger.warning("Rejected webhook %s: body is not a JSON object", delivery)
            return INVALID_JSON

        action = payload.get("action")
        route = classify(event, action)
        if route is None:
            logger.debug("Ignoring webhook %s (%s/%s)", delivery, event, action)
            return OK

        logger.info("Webhook %s routed to %s (action=%s)", delivery, route.value, action)
        try:
            await self.dispatch(route, payload)
        except Exception:
            logger.exception("GitHub webhook error (delivery %s, route %s)", delivery, route.value)
            return ERROR

        return OK

    async def dispatch(self, route: WebhookRoute, payload: Dict[str, Any]) -> None:
        """Run the handler for ``route``"""
        handler = HANDLERS[route]
        await handler(payload, self._store, self._notifier, bot_login=self._bot_login)
