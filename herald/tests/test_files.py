"""
Tests for the attachment download policy and fetcher
"""

import httpx
import pytest

from herald.common.schemas.metadata import Downloaded, FetchError, NoUrl, NotSupported, TooLarge
from herald.slack.files import FileFetcher, classify_file


class FakeDownloader:
    """Serves canned responses keyed by URL"""

    def __init__(self, responses):
        self.responses = responses
        self.requested = []

    async def download(self, url):
        self.requested.append(url)
        response = self.responses[url]
        if isinstance(response, Exception):
            raise response
        return response


def make_file(name="notes.txt", mimetype="text/plain", size=12, url="https://files.slack.com/notes.txt"):
    file = {"id": "F1", "name": name, "mimetype": mimetype, "size": size}
    if url is not None:
        file["url_private"] = url
    return file


class TestClassifyFile:
    TYPES = ["text/plain", "image/png"]

    def test_permitted(self):
        assert classify_file(make_file(), self.TYPES, 100) is None

    def test_no_url_checked_first(self):
        # Too large and unsupported as well, but the missing URL wins
        file = make_file(url=None, size=10_000, mimetype="video/mp4")
        assert classify_file(file, self.TYPES, 100) == NoUrl()

    def test_too_large(self):
        assert classify_file(make_file(size=101), self.TYPES, 100) == TooLarge(size=101)

    def test_exactly_max_size_is_allowed(self):
        assert classify_file(make_file(size=100), self.TYPES, 100) is None

    def test_unknown_size_is_too_large(self):
        file = make_file()
        del file["size"]
        assert classify_file(file, self.TYPES, 100) == TooLarge(size=0)

    def test_zero_size_is_too_large(self):
        assert classify_file(make_file(size=0), self.TYPES, 100) == TooLarge(size=0)

    def test_size_checked_before_type(self):
        file = make_file(size=500, mimetype="video/mp4")
        assert isinstance(classify_file(file, self.TYPES, 100), TooLarge)

    def test_numeric_string_size_is_coerced(self):
        assert classify_file(make_file(size="12"), self.TYPES, 100) is None
        assert classify_file(make_file(size="500"), self.TYPES, 100) == TooLarge(size=500)

    @pytest.mark.parametrize("size", ["twelve", [12], {"bytes": 12}, True, -5])
    def test_unusable_size_is_too_large(self, size):
        assert classify_file(make_file(size=size), self.TYPES, 100) == TooLarge(size=0)

    def test_unsupported_type(self):
        assert classify_file(make_file(mimetype="video/mp4"), self.TYPES, 100) == NotSupported()

    def test_missing_mimetype(self):
        file = make_file()
        del file["mimetype"]
        assert classify_file(file, self.TYPES, 100) == NotSupported()


class TestFileFetcher:
    @pytest.mark.asyncio
    async def test_downloads_permitted_file(self):
        file = make_file()
        client = FakeDownloader({
            file["url_private"]: httpx.Response(
                200, headers={"content-type": "text/plain; charset=utf-8"}, content=b"hello world!"
            ),
        })

        [attachment] = await FileFetcher(client, ["text/plain"], 100).fetch([file])

        assert attachment.file is file
        assert attachment.result == Downloaded(content=b"hello world!")

    @pytest.mark.asyncio
    async def test_policy_rejections_are_not_downloaded(self):
        files = [
            make_file(name="a.mp4", mimetype="video/mp4", url="https://x/a"),
            make_file(name="b.txt", size=10_000, url="https://x/b"),
            make_file(name="c.txt", url=None),
        ]
        client = FakeDownloader({})

        attachments = await FileFetcher(client, ["text/plain"], 100).fetch(files)

        assert [a.result for a in attachments] == [NotSupported(), TooLarge(size=10_000), NoUrl()]
        assert client.requested == []

    @pytest.mark.asyncio
    async def test_http_error_becomes_fetch_error(self):
        file = make_file()
        client = FakeDownloader({
            file["url_private"]: httpx.Response(403, content=b"x" * 2000),
        })

        [attachment] = await FileFetcher(client, ["text/plain"], 100).fetch([file])

        assert isinstance(attachment.result, FetchError)
        message = attachment.result.message
        assert message.startswith("Download failed with status 403: ")
        assert message.endswith("x" * 500)
        assert "x" * 501 not in message

    @pytest.mark.asyncio
    async def test_login_page_becomes_fetch_error(self):
        file = make_file(name="report.pdf", mimetype="application/pdf")
        client = FakeDownloader({
            file["url_private"]: httpx.Response(
                200, headers={"content-type": "text/html"}, content=b"<html>sign in</html>"
            ),
        })

        [attachment] = await FileFetcher(client, ["application/pdf"], 100).fetch([file])

        assert attachment.result == FetchError(
            message="The file report.pdf mime type returned by the server was text/html."
        )

    @pytest.mark.asyncio
    async def test_transport_error_becomes_fetch_error(self):
        file = make_file()
        client = FakeDownloader({file["url_private"]: httpx.ConnectError("connection refused")})

        [attachment] = await FileFetcher(client, ["text/plain"], 100).fetch([file])

        assert attachment.result == FetchError(message="connection refused")

    @pytest.mark.asyncio
    async def test_one_failure_does_not_affect_others(self):
        good = make_file(name="good.txt", url="https://x/good")
        bad = make_file(name="bad.txt", url="https://x/bad")
        client = FakeDownloader({
            "https://x/good": httpx.Response(200, headers={"content-type": "text/plain"}, content=b"ok"),
            "https://x/bad": httpx.Response(500, content=b"boom"),
        })

        attachments = await FileFetcher(client, ["text/plain"], 100).fetch([bad, good])

        assert [a.name for a in attachments] == ["bad.txt", "good.txt"]
        assert isinstance(attachments[0].result, FetchError)
        assert attachments[1].result == Downloaded(content=b"ok")

    @pytest.mark.asyncio
    async def test_malformed_file_does_not_affect_others(self):
        good = make_file(name="good.txt", url="https://x/good")
        bad_size = make_file(name="bad.txt", size="not a number", url="https://x/bad")
        client = FakeDownloader({
            "https://x/good": httpx.Response(200, headers={"content-type": "text/plain"}, content=b"ok"),
        })

        attachments = await FileFetcher(client, ["text/plain"], 100).fetch([bad_size, "not a file", good])

        assert len(attachments) == 3
        assert attachments[0].result == TooLarge(size=0)
        assert isinstance(attachments[1].result, FetchError)
        assert attachments[1].name == "unnamed"
        assert attachments[2].result == Downloaded(content=b"ok")
        assert client.requested == ["https://x/good"]

    @pytest.mark.asyncio
    async def test_default_supported_types(self):
        file = make_file(name="pic.png", mimetype="image/png")
        client = FakeDownloader({
            file["url_private"]: httpx.Response(200, headers={"content-type": "image/png"}, content=b"\x89PNG"),
        })

        [attachment] = await FileFetcher(client).fetch([file])

        assert attachment.result == Downloaded(content=b"\x89PNG")

    @pytest.mark.asyncio
    async def test_no_files(self):
        assert await FileFetcher(FakeDownloader({})).fetch([]) == []
