"""
Reverse image search by game logo.

The lens results page is large, and the similar-image links sit early in an
opaque script payload. The body is read in chunks and scanned as it arrives;
reading stops as soon as three links are captured.
"""

import re
from typing import List, Optional, Tuple

import requests

from ..config import Settings
from ..logger import get_logger
from ..models import CandidateItem, Entity, Slot
from .common import FetchClient, FetchError, deduplicate_urls

MAX_LINKS = 3

LENS_ANCHOR = b'"Show less","See more","Show less Similar images","See more Similar images"'
# After the anchor: a link, then for each further link a "[[" group opener
# followed by the next link.
LINK_PATTERN = re.compile(rb',"(https?://[^"]+)"')
LINK_START = b',"'
GROUP_OPEN = b"[["
_URL_PREFIXES = (b"https://", b"http://")


class LensError(Exception):
    """The logo search request failed."""


class LensScanner:
    """Incremental scanner over a growing byte buffer.

    Until the anchor text shows up only a tail short enough to hold a split
    anchor is kept. Once it does, the links are read in order, each step
    resuming where the previous one stopped, so no byte is scanned twice
    however the body is chunked. If ``window`` bytes are held without all
    links found, the oldest bytes are dropped and the anchor is looked for
    again.
    """

    def __init__(
        self,
        anchor: bytes = LENS_ANCHOR,
        window: int = 256 * 1024,
        limit: int = MAX_LINKS,
    ):
        if window < len(anchor):
            raise ValueError("window is smaller than the anchor")
        self.anchor = anchor
        self.window = window
        self.limit = limit
        self.buffer = bytearray()
        # Stream offset of buffer[0].
        self.cursor = 0
        # Stream offset the next scan step starts from.
        self.scan_at = 0
        self.anchored = False
        self.want_group = False
        self.captured: List[str] = []
        self.links: Optional[List[str]] = None

    @property
    def done(self) -> bool:
        return self.links is not None

    def _drop(self, count: int) -> None:
        del self.buffer[:count]
        self.cursor += count

    def _restart(self) -> None:
        self.anchored = False
        self.want_group = False
        self.captured = []
        self.scan_at = self.cursor

    def feed(self, chunk: bytes) -> Optional[List[str]]:
        """Append a chunk; return the captured links once all are found."""
        if self.done:
            return self.links
        self.buffer += chunk

        while True:
            if not self.anchored and not self._find_anchor():
                return None
            if self._scan():
                self.links = deduplicate_urls(self.captured)[: self.limit]
                return self.links
            if len(self.buffer) <= self.window:
                return None
            self._drop(len(self.buffer) - self.window)
            self._restart()

    def finish(self) -> List[str]:
        """Links found when the stream ended; fewer than the limit is fine."""
        if self.links is None:
            self.links = deduplicate_urls(self.captured)[: self.limit]
        return self.links

    def _find_anchor(self) -> bool:
        idx = self.buffer.find(self.anchor, self.scan_at - self.cursor)
        if idx < 0:
            keep = len(self.anchor) - 1
            if len(self.buffer) > keep:
                self._drop(len(self.buffer) - keep)
            self.scan_at = self.cursor
            return False
        self._drop(idx)
        self.anchored = True
        self.scan_at = self.cursor + len(self.anchor)
        return True

    def _scan(self) -> bool:
        while len(self.captured) < self.limit:
            pos = self.scan_at - self.cursor
            if self.want_group:
                idx = self.buffer.find(GROUP_OPEN, pos)
                if idx < 0:
                    # a split opener may still complete with the next chunk
                    self.scan_at = self.cursor + max(pos, len(self.buffer) - len(GROUP_OPEN) + 1)
                    return False
                self.want_group = False
                self.scan_at = self.cursor + idx + len(GROUP_OPEN)
                continue
            link, resume = self._next_link(pos)
            self.scan_at = self.cursor + resume
            if link is None:
                return False
            self.captured.append(link)
            self.want_group = True
        return True

    def _next_link(self, pos: int) -> Tuple[Optional[str], int]:
        while True:
            idx = self.buffer.find(LINK_START, pos)
            if idx < 0:
                return None, max(pos, len(self.buffer) - len(LINK_START) + 1)
            if self.buffer.find(b'"', idx + len(LINK_START)) < 0:
                if self._may_be_link(idx):
                    return None, idx
            else:
                match = LINK_PATTERN.match(self.buffer, idx)
                if match:
                    return match.group(1).decode("utf-8", errors="replace"), match.end()
            pos = idx + 1

    def _may_be_link(self, idx: int) -> bool:
        start = idx + len(LINK_START)
        head = bytes(self.buffer[start:start + len(_URL_PREFIXES[0])])
        return any(head.startswith(p) or p.startswith(head) for p in _URL_PREFIXES)


class LensClient:
    def __init__(self, fetcher: FetchClient, settings: Optional[Settings] = None, log=None):
        self.fetcher = fetcher
        self.settings = settings or fetcher.settings
        self.log = log or get_logger()

    @property
    def search_url(self) -> str:
        return f"{self.settings.lens_host}/uploadbyurl"

    def find_links(self, logo: str) -> List[str]:
        """Return up to three distinct links of pages showing a similar image.

        Fewer, or none, come back when the page lists fewer results.
        """
        if not logo:
            raise LensError("no logo to search by")
        params = {"url": logo, "hl": self.settings.lens_locale}
        scanner = LensScanner()
        try:
            with self.fetcher.stream(self.search_url, params=params) as resp:
                for chunk in resp.iter_content(chunk_size=self.settings.chunk_size):
                    if chunk and scanner.feed(chunk) is not None:
                        break
        except FetchError as e:
            raise LensError(f"logo search failed for {logo}: {e}") from e
        except requests.exceptions.RequestException as e:
            raise LensError(f"failed to read logo search result for {logo}: {e}") from e
        return scanner.finish()

    def search_by_logo(self, entity: Entity, slot: Slot) -> int:
        """Append logo search results to the slot as unnamed candidates."""
        links = self.find_links(entity.logo)
        known = set(slot.links())
        added = 0
        for link in links:
            if link in known:
                continue
            slot.add(CandidateItem(name="", link=link))
            added += 1
        self.log.debug(f"Logo search found {added} link(s) for {entity.name}")
        return added
