"""
GitHub Integration

Webhook authentication, routing, and follow-up notifications for pull
requests that belong to an agent conversation.
"""

from .router import GitHubWebhookRouter, WebhookResult, WebhookRoute, classify
from .signature import verify_signature

__all__ = [
    "GitHubWebhookRouter",
    "WebhookResult",
    "WebhookRoute",
    "classify",
    "verify_signature",
]
