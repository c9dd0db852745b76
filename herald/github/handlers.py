"""
GitHub Webhook Event Handlers

Each handler maps one webhook payload shape to at most a few notifications
for the conversation that owns the pull request:

- pull_request: merged pull requests
- pull_request_review: submitted/edited/dismissed reviews
- pull_request_review_comment: inline review comments from trusted authors
- issue_comment: conversation comments from trusted authors
- check_run: failed, timed out or cancelled CI runs on the current head

Handlers are only invoked after signature verification. Gates that do not
match (bot's own activity, untrusted authors, unassociated pull requests)
return normally; unexpected payload shapes raise and become a 500.
"""

import logging
from typing import Any, Dict, Optional, Union

from ..common.notifier import AgentNotifier
from ..common.schemas.parts import AgentMessage, TextPart
from ..common.store import AssociationStore, association_key

logger = logging.getLogger("herald.github.handlers")

TRUSTED_AUTHOR_ASSOCIATIONS = {"COLLABORATOR", "MEMBER", "OWNER"}
FAILED_CHECK_CONCLUSIONS = {"failure", "timed_out", "cancelled"}

BOT_SUFFIX = "[bot]"


def is_bot_login(login: Optional[str], bot_login: str) -> bool:
    """
    Check whether ``login`` is the configured bot.

    GitHub App bots act as ``<name>[bot]``; the configured login may be given
    with or without that suffix and both spellings match.
    """
    if not login or not bot_login:
        return False
    base = bot_login[:-len(BOT_SUFFIX)] if bot_login.endswith(BOT_SUFFIX) else bot_login
    return login in (base, base + BOT_SUFFIX)


async def notify_if_associated(
    store: AssociationStore,
    notifier: AgentNotifier,
    ref: Union[int, str],
    summary: str,
    details: str,
) -> bool:
    """
    Send a two-part notification to the conversation associated with ``ref``.

    Returns:
        True if a conversation was found and notified
    """
    chat_id = await store.get(association_key(ref))
    if not chat_id:
        logger.debug("No conversation associated with %s", ref)
        return False

    message = AgentMessage(parts=[TextPart(text=summary), TextPart(text=details)])
    await notifier.send_messages(chat_id, [message])
    logger.info("Notified chat %s about %s", chat_id, ref)
    return True


def _sender_login(payload: Dict[str, Any]) -> str:
    return (payload.get("sender") or {}).get("login", "")


async def handle_pull_request(
    payload: Dict[str, Any],
    store: AssociationStore,
    notifier: AgentNotifier,
    *,
    bot_login: str = "",
) -> None:
    """Notify when an associated pull request is merged"""
    pr = payload["pull_request"]
    if payload.get("action") != "closed" or pr.get("merged") is not True:
        return

    await notify_if_associated(
        store,
        notifier,
        pr["id"],
        summary="The pull request was merged.",
        details=(
            "A webhook was received for a pull request merge.\n\n"
            f"Pull request ID: {pr['id']}\n"
            f"Pull request state: {pr.get('state')}\n"
            f"Pull request merged: {pr.get('merged')}\n"
            f"Pull request merged at: {pr.get('merged_at')}\n"
        ),
    )


async def handle_pull_request_review(
    payload: Dict[str, Any],
    store: AssociationStore,
    notifier: AgentNotifier,
    *,
    bot_login: str = "",
) -> None:
    """Forward a review on an associated pull request"""
    sender = _sender_login(payload)
    if is_bot_login(sender, bot_login):
        return

    pr = payload["pull_request"]
    review = payload["review"]
    body = review.get("body") or "No body provided."

    await notify_if_associated(
        store,
        notifier,
        pr["id"],
        summary=f"A pull request was reviewed ({review.get('state')}) by {sender}.",
        details=(
            "A webhook was received for a pull request review.\n\n"
            f"Review ID: {review.get('id')}\n"
            f"Review state: {review.get('state')}\n"
            f"Reviewer: {sender}\n"
            f"Review commit: {review.get('commit_id')}\n\n"
            f"Review body:\n{body}\n\n"
            "---\n\n"
            "There may be comments on the review you should read. "
            "If the review requests changes, you are responsible for making the changes.\n"
        ),
    )


async def handle_pull_request_review_comment(
    payload: Dict[str, Any],
    store: AssociationStore,
    notifier: AgentNotifier,
    *,
    bot_login: str = "",
) -> None:
    """Forward an inline review comment from a trusted author"""
    sender = _sender_login(payload)
    if is_bot_login(sender, bot_login):
        return

    comment = payload["comment"]
    if comment.get("author_association") not in TRUSTED_AUTHOR_ASSOCIATIONS:
        return

    pr = payload["pull_request"]
    await notify_if_associated(
        store,
        notifier,
        pr["id"],
        summary=f"A pull request comment was {payload.get('action')} by {sender}.",
        details=(
            "A webhook was received for a pull request comment.\n\n"
            f"Comment ID: {comment.get('id')}\n"
            f"Commenter: {sender}\n"
            f"Comment commit: {comment.get('commit_id')}\n\n"
            f"Comment body:\n{comment.get('body') or ''}\n\n"
            "---\n\n"
            "If the comment requests changes, you are responsible for making the changes.\n"
        ),
    )


async def handle_issue_comment(
    payload: Dict[str, Any],
    store: AssociationStore,
    notifier: AgentNotifier,
    *,
    bot_login: str = "",
) -> None:
    """Forward a conversation comment from a trusted author"""
    sender = _sender_login(payload)
    if is_bot_login(sender, bot_login):
        return

    comment = payload["comment"]
    if comment.get("author_association") not in TRUSTED_AUTHOR_ASSOCIATIONS:
        return

    # Issue ids differ from pull request ids for the same PR; node ids match.
    issue = payload["issue"]
    await notify_if_associated(
        store,
        notifier,
        issue["node_id"],
        summary=f"An issue comment was {payload.get('action')} by {sender}.",
        details=(
            "A webhook was received for an issue comment.\n\n"
            f"Comment ID: {comment.get('id')}\n"
            f"Commenter: {sender}\n\n"
            f"Comment body:\n{comment.get('body') or ''}\n\n"
            "---\n\n"
            "If the comment requests changes, you are responsible for making the changes.\n"
        ),
    )


async def handle_pull_request_review_thread(
    payload: Dict[str, Any],
    store: AssociationStore,
    notifier: AgentNotifier,
    *,
    bot_login: str = "",
) -> None:
    """Thread resolved/unresolved. Nothing to tell the agent."""
    return None


async def handle_check_run(
    payload: Dict[str, Any],
    store: AssociationStore,
    notifier: AgentNotifier,
    *,
    bot_login: str = "",
) -> None:
    """Notify every associated pull request whose head a failed check ran on"""
    if payload.get("action") != "completed":
        return

    check_run = payload["check_run"]
    conclusion = check_run.get("conclusion")
    if conclusion not in FAILED_CHECK_CONCLUSIONS:
        return

    head_sha = check_run.get("head_sha")
    for pr in check_run.get("pull_requests") or []:
        # Superseded by a newer push
        if (pr.get("head") or {}).get("sha") != head_sha:
            continue

        await notify_if_associated(
            store,
            notifier,
            pr["id"],
            summary="A check run was completed for a pull request.",
            details=(
                "A webhook was received for a check run.\n\n"
                f"Check run ID: {check_run.get('id')}\n"
                f"Check run name: {check_run.get('name')}\n"
                f"Check run status: {check_run.get('status')}\n"
                f"Check run conclusion: {conclusion}\n\n"
                "---\n\n"
                "If the check run fails, you are responsible for fixing the issue.\n"
            ),
        )
