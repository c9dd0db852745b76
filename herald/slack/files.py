"""
File Attachment Fetcher

Classifies each attached file against the download policy and downloads the
permitted ones. Every file yields exactly one outcome; nothing raises.

Policy, checked in order:
1. No private URL            -> NoUrl
2. Size unknown or too large -> TooLarge(size)
3. Mimetype not permitted    -> NotSupported
4. Otherwise download        -> Downloaded(bytes) or FetchError(message)
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx

from ..common.config import DEFAULT_MAX_FILE_SIZE, DEFAULT_SUPPORTED_FILE_TYPES
from ..common.schemas.metadata import (
    Downloaded,
    FetchError,
    FileAttachment,
    FileOutcome,
    NoUrl,
    NotSupported,
    TooLarge,
)

logger = logging.getLogger("herald.slack.files")

MAX_ERROR_BODY = 500


class FileDownloadClient(Protocol):
    """Authenticated GET of a private file URL"""

    async def download(self, url: str) -> httpx.Response:
        ...


def classify_file(
    file: Dict[str, Any],
    supported_file_types: List[str],
    max_file_size: int,
) -> Optional[FileOutcome]:
    """
    Apply the download policy.

    Returns:
        The final outcome when the file must not be downloaded, else None
    """
    if not file.get("url_private"):
        return NoUrl()

    size = _file_size(file.get("size"))
    if size <= 0 or size > max_file_size:
        return TooLarge(size=max(size, 0))

    mimetype = file.get("mimetype")
    if not mimetype or mimetype not in supported_file_types:
        return NotSupported()

    return None


def _file_size(value: Any) -> int:
    """Declared size in bytes, 0 when missing or not a number"""
    if isinstance(value, bool):
        return 0
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _media_type(content_type: Optional[str]) -> str:
    """``text/plain; charset=utf-8`` -> ``text/plain``"""
    return (content_type or "").split(";", 1)[0].strip().lower()


class FileFetcher:
    """Downloads the permitted attachments of a message, concurrently"""

    def __init__(
        self,
        client: FileDownloadClient,
        supported_file_types: Optional[List[str]] = None,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
        max_concurrency: int = 16,
    ):
        self._client = client
        self._supported_file_types = (
            list(supported_file_types) if supported_file_types is not None
            else list(DEFAULT_SUPPORTED_FILE_TYPES)
        )
        self._max_file_size = max_file_size
        self._max_concurrency = max(1, max_concurrency)

    async def fetch(self, files: List[Dict[str, Any]]) -> List[FileAttachment]:
        """
        Fetch or classify every file.

        Args:
            files: The message's ``files`` array

        Returns:
            One FileAttachment per file, in input order
        """
        semaphore = asyncio.Semaphore(self._max_concurrency)
        results = await asyncio.gather(*(self._fetch_one(f, semaphore) for f in files or []))
        return list(results)

    async def _fetch_one(self, file: Dict[str, Any], semaphore: asyncio.Semaphore) -> FileAttachment:
        try:
            outcome = classify_file(file, self._supported_file_types, self._max_file_size)
        except Exception as e:
            logger.info("Could not classify attachment %r: %s", file, e)
            return FileAttachment(file=file, result=FetchError(message=str(e)))
        if outcome is not None:
            return FileAttachment(file=file, result=outcome)

        async with semaphore:
            try:
                content = await self._download(file)
            except Exception as e:
                logger.info("Download of %s failed: %s", file.get("name") or file.get("id"), e)
                return FileAttachment(file=file, result=FetchError(message=str(e)))

        return FileAttachment(file=file, result=Downloaded(content=content))

    async def _download(self, file: Dict[str, Any]) -> bytes:
        response = await self._client.download(file["url_private"])

        if not response.is_success:
            raise RuntimeError(
                f"Download failed with status {response.status_code}: "
                f"{response.text[:MAX_ERROR_BODY]}"
            )

        # Slack answers expired/unauthorized links with a 200 HTML login page
        content_type = response.headers.get("content-type")
        if _media_type(content_type) != _media_type(file.get("mimetype")):
            raise RuntimeError(
                f"The file {file.get('name')} mime type returned by the server was {content_type}."
            )

        return response.content
