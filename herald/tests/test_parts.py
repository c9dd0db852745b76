"""
Tests for content part construction
"""

import base64
from datetime import datetime, timezone

from herald.common.schemas import AgentMessage, FilePart, TextPart, dump_parts
from herald.common.schemas.metadata import (
    ChannelMention,
    Downloaded,
    FetchError,
    FileAttachment,
    MessageMetadata,
    NoUrl,
    NotSupported,
    TeamMention,
    TooLarge,
    UserMention,
)
from herald.slack.parts import (
    create_parts_from_metadata,
    format_file_notice,
    format_mention_legend,
    should_respond_in_thread,
)

BOT_ID = "UBOT00001"
CREATED = datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)

MESSAGE = {
    "channel": "C123",
    "ts": "1700000000.000100",
    "thread_ts": "1699999999.000001",
    "text": "hey <@UBOT00001> look at this",
}


def bot_mention():
    return UserMention(id=BOT_ID, user={"id": BOT_ID, "name": "herald", "is_bot": True, "real_name": "Herald"})


def attachment(name, mimetype, result):
    return FileAttachment(file={"id": f"F-{name}", "name": name, "mimetype": mimetype}, result=result)


class TestShouldRespondInThread:
    def test_mentioned_in_channel(self):
        metadata = MessageMetadata(created_at=CREATED, mentions=[bot_mention()], channel={"id": "C123"})
        assert should_respond_in_thread(metadata, BOT_ID) is True

    def test_not_mentioned(self):
        metadata = MessageMetadata(created_at=CREATED, channel={"id": "C123"})
        assert should_respond_in_thread(metadata, BOT_ID) is False

    def test_direct_message(self):
        metadata = MessageMetadata(created_at=CREATED, mentions=[bot_mention()], channel={"is_im": True})
        assert should_respond_in_thread(metadata, BOT_ID) is False

    def test_group_direct_message(self):
        metadata = MessageMetadata(created_at=CREATED, mentions=[bot_mention()], channel={"is_mpim": True})
        assert should_respond_in_thread(metadata, BOT_ID) is False

    def test_bot_identity_unknown(self):
        metadata = MessageMetadata(created_at=CREATED, mentions=[bot_mention()])
        assert should_respond_in_thread(metadata, None) is False


class TestMentionLegend:
    def test_all_kinds(self):
        metadata = MessageMetadata(
            created_at=CREATED,
            mentions=[
                ChannelMention(id="C1", channel={"name": "general"}),
                TeamMention(id="T1", team={"name": "Acme"}),
                bot_mention(),
                UserMention(id="U2", user={"name": "ci", "is_bot": True, "profile": {"display_name": "CI"}}),
                UserMention(id="U3", user={"name": "alice", "real_name": "Alice A"}),
            ],
        )

        legend = format_mention_legend(metadata, BOT_ID)

        assert legend.startswith("Mentions found in the message:\n")
        assert "Channel: C1 => general" in legend
        assert "Team: T1 => Acme" in legend
        assert f"Bot (this is you!): {BOT_ID} => herald (Herald)" in legend
        assert "Bot: U2 => ci (CI)" in legend
        assert "User: U3 => alice (Alice A)" in legend
        assert legend.endswith("Be sure to use the <@id> format for mentions.")

    def test_display_name_fallback(self):
        metadata = MessageMetadata(created_at=CREATED, mentions=[UserMention(id="U3", user={"name": "bob"})])
        assert "User: U3 => bob (N/A)" in format_mention_legend(metadata, BOT_ID)

    def test_no_mentions(self):
        legend = format_mention_legend(MessageMetadata(created_at=CREATED), BOT_ID)
        assert "Channel:" not in legend
        assert "User:" not in legend


class TestFileNotice:
    def test_fetch_error(self):
        notice = format_file_notice(attachment("a.pdf", "application/pdf", FetchError(message="boom")))
        assert notice == "The user attached file a.pdf, but it could not be downloaded. Error: boom"

    def test_too_large(self):
        notice = format_file_notice(attachment("big.png", "image/png", TooLarge(size=123456)))
        assert notice == "The user attached file big.png, but it was too large (123456 bytes) to download."

    def test_not_supported(self):
        notice = format_file_notice(attachment("clip.mp4", "video/mp4", NotSupported()))
        assert "the file type (video/mp4) is not supported" in notice

    def test_no_url(self):
        notice = format_file_notice(attachment("x.txt", "text/plain", NoUrl()))
        assert "no download URL" in notice


class TestCreateParts:
    def test_order_and_content(self):
        metadata = MessageMetadata(
            created_at=CREATED,
            mentions=[bot_mention()],
            user={"id": "U9", "name": "alice", "real_name": "Alice A"},
            channel={"id": "C123", "name": "general"},
            files=[
                attachment("huge.png", "image/png", TooLarge(size=99_999_999)),
                attachment("notes.txt", "text/plain", Downloaded(content=b"hello")),
                attachment("clip.mp4", "video/mp4", NotSupported()),
            ],
        )

        parts = create_parts_from_metadata(metadata, MESSAGE, bot_user_id=BOT_ID)

        assert [p.type for p in parts] == ["text", "text", "text", "text", "file", "text", "text"]

        header = parts[0].text
        assert header.startswith("You *must* respond by sending a Slack message.")
        assert "Timestamp Formatted: 11/14/2023, 10:13:20 PM UTC" in header
        assert "Timestamp Raw: 1700000000.000100" in header
        assert "Thread Timestamp: 1699999999.000001" in header
        assert "Channel ID: C123" in header
        assert "From User: alice (<@U9>) (Alice A)" in header

        assert parts[1].text == "You *must* reply with using the message's timestamp."
        assert parts[2].text == "Slack Message Content:\nhey <@UBOT00001> look at this"
        assert parts[3].text.startswith("Mentions found in the message:")

        file_part = parts[4]
        assert isinstance(file_part, FilePart)
        assert file_part.media_type == "text/plain"
        assert file_part.url == "data:text/plain;base64," + base64.b64encode(b"hello").decode()

        assert "huge.png" in parts[5].text
        assert "clip.mp4" in parts[6].text

    def test_may_reply_without_mention(self):
        metadata = MessageMetadata(created_at=CREATED, channel={"id": "C123"})

        parts = create_parts_from_metadata(metadata, MESSAGE, bot_user_id=BOT_ID)

        assert parts[1].text.startswith("You *may* reply")

    def test_missing_fields(self):
        metadata = MessageMetadata(created_at=CREATED)

        parts = create_parts_from_metadata(metadata, {}, bot_user_id=None)

        header = parts[0].text
        assert "Timestamp Raw: N/A" in header
        assert "Thread Timestamp: N/A" in header
        assert "Channel ID: N/A" in header
        assert "From User" not in header
        assert parts[2].text == "Slack Message Content:\n"
        assert len(parts) == 4

    def test_wire_format(self):
        metadata = MessageMetadata(
            created_at=CREATED,
            files=[attachment("pic.png", "image/png", Downloaded(content=b"\x89PNG"))],
        )
        parts = create_parts_from_metadata(metadata, MESSAGE)

        dumped = dump_parts(parts)

        assert dumped[0] == {"type": "text", "text": parts[0].text}
        assert dumped[4] == {"type": "file", "url": parts[4].url, "mediaType": "image/png"}

    def test_agent_message_defaults(self):
        message = AgentMessage(parts=[TextPart(text="hi")])
        assert message.role == "user"
        assert message.id
        assert message.id != AgentMessage().id
