"""
Slack Formatting

Helps LLM output render correctly in Slack (mrkdwn is not Markdown).
"""

import re

MAX_MESSAGE_LENGTH = 3000

FORMATTING_RULES = """FORMATTING RULES:
- *text* = bold (NOT italics like in standard markdown)
- _text_ = italics
- `text` = inline code
- ``` = code blocks (do NOT put a language after the backticks)
- ~text~ = strikethrough
- <http://example.com|link text> = links
- tables must be in a code block
- user mentions must be in the format <@user_id> (e.g. <@U01UBAM2C4D>)

NEVER USE:
- Headings (#, ##, ###, etc.)
- Double asterisks (**text**) - Slack doesn't support this
- Standard markdown bold/italic conventions"""

_MARKDOWN_LINK = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")
_DOUBLE_STAR_BOLD = re.compile(r"\*\*([^*]+)\*\*")
_AT_USER_ID = re.compile(r"(?<!<)@(?:U|W)[A-Z0-9]{8,}(?!>)")
_BARE_USER_ID = re.compile(r"(^|[^A-Z0-9<@])((?:U|W)[A-Z0-9]{8,})(?![A-Z0-9>])")
_BRACKETED_HANDLE = re.compile(r"<@([a-z0-9._-]+)>", re.IGNORECASE)
_USER_ID = re.compile(r"[UW][A-Z0-9]{8,}")


def _unwrap_handle(match: "re.Match[str]") -> str:
    handle = match.group(1)
    if _USER_ID.fullmatch(handle):
        return match.group(0)
    return f"@{handle}"


def format_message(text: str) -> str:
    """
    Rewrite model output into Slack mrkdwn.

    - Truncates to 3000 characters
    - ``[text](url)`` -> ``<url|text>``
    - ``**bold**`` -> ``*bold*``
    - ``@U0123ABCD`` and bare ``U0123ABCD`` -> ``<@U0123ABCD>``
    - ``<@handle>`` that is not a user id -> ``@handle``
    """
    text = text[:MAX_MESSAGE_LENGTH]
    text = _MARKDOWN_LINK.sub(r"<\2|\1>", text)
    text = _DOUBLE_STAR_BOLD.sub(r"*\1*", text)
    text = _AT_USER_ID.sub(lambda m: f"<{m.group(0)}>", text)
    text = _BARE_USER_ID.sub(lambda m: f"{m.group(1)}<@{m.group(2)}>", text)
    text = _BRACKETED_HANDLE.sub(_unwrap_handle, text)
    return text
