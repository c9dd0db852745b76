"""GitHub webhook HMAC-SHA256 signature verification."""

import hashlib
import hmac
import re

SIGNATURE_PREFIX = "sha256="

_SIGNATURE_RE = re.compile(r"sha256=[0-9a-fA-F]{64}")


def verify_signature(body: bytes, signature: str, secret: str) -> bool:
    """
    Verify a GitHub webhook signature.

    Args:
        body: Raw request body bytes
        signature: Value of the X-Hub-Signature-256 header (``sha256=<hex>``)
        secret: Webhook secret configured on the GitHub App

    Returns:
        True only if the signature is well-formed and matches
    """
    if not secret or not signature:
        return False

    if not _SIGNATURE_RE.fullmatch(signature):
        return False

    expected = hmac.new(
        key=secret.encode("utf-8"),
        msg=body,
        digestmod=hashlib.sha256,
    ).hexdigest()

    claimed = signature[len(SIGNATURE_PREFIX):].lower()
    return hmac.compare_digest(expected, claimed)


def compute_signature(body: bytes, secret: str) -> str:
    """Header value GitHub would send for ``body``"""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"
