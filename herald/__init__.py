"""
Herald

Inbound event normalization for chat-style agent integrations.

Turns Slack messages and GitHub webhooks into ordered content parts that an
agent runtime can consume:
- Slack: mention/sender/channel resolution, attachment download, part building
- GitHub: signature verification, event routing, PR/issue follow-up notices

Usage:
    from herald.common import load_config
    from herald.slack import extract_messages_metadata, create_parts_from_metadata
    from herald.github import GitHubWebhookRouter
"""

__version__ = "0.1.0"
