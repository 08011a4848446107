"""Link validity checks.

Ordinary links are judged by status code: a ``HEAD`` probe, escalated to a
``GET`` when the probe answers 404. Video-host links are judged by page
content, because those hosts answer 200 for removed or private videos.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence, Tuple
from urllib.parse import urlparse

from .document import CheckResult
from .fetcher import FetchError, Fetcher, FetchMethod

LOGGER = logging.getLogger(__name__)

VIDEO_HOSTS: Tuple[str, ...] = ("youtube.com", "youtu.be")

UNAVAILABLE_PHRASES: Tuple[str, ...] = (
    "This video is no longer available",
    "Video unavailable",
    "This video is private",
    "has been removed",
)

NOT_FOUND = 404


def _host_of(url: str) -> str:
    try:
        host = urlparse(url).hostname
    except ValueError:
        host = None
    # Unparseable URLs are matched on their full text.
    return (host or url).lower()


def is_video_url(url: str, hosts: Iterable[str] = VIDEO_HOSTS) -> bool:
    host = _host_of(url)
    return any(candidate in host for candidate in hosts)


def find_unavailable_phrase(
    body: str, phrases: Sequence[str] = UNAVAILABLE_PHRASES
) -> Optional[str]:
    for phrase in phrases:
        if phrase in body:
            return phrase
    return None


class LinkChecker:
    """Classify one URL at a time as broken or not broken."""

    def __init__(
        self,
        fetcher: Fetcher,
        *,
        video_hosts: Sequence[str] = VIDEO_HOSTS,
        unavailable_phrases: Sequence[str] = UNAVAILABLE_PHRASES,
    ) -> None:
        self.fetcher = fetcher
        self.video_hosts = tuple(video_hosts)
        self.unavailable_phrases = tuple(unavailable_phrases)

    async def check(self, url: str) -> CheckResult:
        """
        Check a single URL.

        Args:
            url: The URL to check. Blank values are never broken.

        Returns:
            CheckResult; transport failures are reported as broken with the
            failure message in ``reason``.
        """
        if not url or not url.strip():
            return CheckResult(url=url, broken=False)

        try:
            if is_video_url(url, self.video_hosts):
                return await self._check_video(url)
            return await self._check_status(url)
        except FetchError as exc:
            LOGGER.warning("Error checking %s: %s", url, exc)
            return CheckResult(url=url, broken=True, reason=str(exc))

    async def is_broken(self, url: str) -> bool:
        return (await self.check(url)).broken

    async def _check_video(self, url: str) -> CheckResult:
        response = await self.fetcher.fetch(url, FetchMethod.FULL)
        phrase = find_unavailable_phrase(response.body or "", self.unavailable_phrases)
        if phrase:
            return CheckResult(
                url=url,
                broken=True,
                reason=f"Page reports: {phrase}",
                status_code=response.status_code,
            )
        return CheckResult(url=url, broken=False, status_code=response.status_code)

    async def _check_status(self, url: str) -> CheckResult:
        response = await self.fetcher.fetch(url, FetchMethod.EXISTENCE_PROBE)
        if response.status_code != NOT_FOUND:
            return CheckResult(url=url, broken=False, status_code=response.status_code)

        # Some servers reject HEAD; only a second 404 on GET confirms absence.
        LOGGER.debug("HEAD 404 for %s, retrying with GET", url)
        response = await self.fetcher.fetch(url, FetchMethod.FULL, read_body=False)
        if response.status_code == NOT_FOUND:
            return CheckResult(
                url=url,
                broken=True,
                reason="HTTP 404 Not Found",
                status_code=response.status_code,
            )
        return CheckResult(url=url, broken=False, status_code=response.status_code)
