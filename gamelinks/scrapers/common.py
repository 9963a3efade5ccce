"""HTTP access shared by the store and lens scrapers."""

import re
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

import requests

from ..config import Settings
from ..logger import get_logger
from ..retry import RetryError, exponential_backoff, should_retry_http_status

# The store answers suspected bots with a Cloudflare challenge page.
CHALLENGE_MARKER = b"<title>Just a moment...</title>"
NOT_FOUND_MARKER = b"/en-US/not-found"

BROWSER_HEADERS = {
    "accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.7",
    "accept-language": "en-CA,en;q=0.9",
    "cache-control": "no-cache",
    "dnt": "1",
    "pragma": "no-cache",
    "priority": "u=0, i",
    "sec-ch-ua": '"Not;A=Brand";v="24", "Chromium";v="128"',
    "sec-ch-ua-mobile": "?0",
    "sec-ch-ua-platform": '"Linux"',
    "sec-fetch-dest": "document",
    "sec-fetch-mode": "navigate",
    "sec-fetch-site": "none",
    "sec-fetch-user": "?1",
    "upgrade-insecure-requests": "1",
    "user-agent": "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/128.0.0.0 Safari/537.36",
}

_UNSAFE_PATH_CHARS = re.compile(r"[^\w.-]")


class FetchError(Exception):
    """A request failed in a way retrying will not fix."""


class TooManyRetries(FetchError):
    """Every attempt hit the challenge page or a transient error."""

    def __init__(self, url: str, attempts: int, dump_path: Optional[Path] = None):
        self.url = url
        self.attempts = attempts
        self.dump_path = dump_path
        message = f"too many retries for {url} ({attempts} attempts)"
        if dump_path is not None:
            message += f", last response saved to {dump_path}"
        super().__init__(message)


class TransientResponse(Exception):
    """A response worth retrying; keeps the body for the diagnostic dump."""

    def __init__(self, url: str, status_code: int, body: bytes, reason: str):
        self.url = url
        self.status_code = status_code
        self.body = body
        super().__init__(f"{reason} ({status_code}) for {url}")


@dataclass
class FetchResult:
    url: str
    status_code: int
    body: bytes
    not_found: bool = False

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


class FetchClient:
    """GET with challenge detection and exponential backoff.

    fetch() returns a FetchResult whose ``not_found`` flag marks the store's
    "not found" page; that is a normal negative and is never retried.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session: Optional[requests.Session] = None,
        log=None,
    ):
        self.settings = settings or Settings()
        self.session = session or requests.Session()
        self.session.headers.update(BROWSER_HEADERS)
        self.log = log or get_logger()
        self._get_with_retry = exponential_backoff(
            attempts=self.settings.retries,
            base_delay=self.settings.backoff,
            exceptions=(
                TransientResponse,
                requests.exceptions.Timeout,
                requests.exceptions.ConnectionError,
            ),
            on_retry=self._on_retry,
        )(self._get_once)

    def _on_retry(self, attempt: int, error: Exception, delay: float):
        self.log.debug(f"Retrying in {delay:.2f}s after attempt {attempt}: {error}")

    def _get_once(self, url: str) -> FetchResult:
        self.log.record("fetch")
        resp = self.session.get(url, timeout=self.settings.timeout)
        body = resp.content or b""
        status = resp.status_code

        if NOT_FOUND_MARKER in body or status == 404:
            return FetchResult(url, status, body, not_found=True)
        if CHALLENGE_MARKER in body:
            raise TransientResponse(url, status, body, "challenge page")
        if should_retry_http_status(status):
            raise TransientResponse(url, status, body, "retryable status")
        if status >= 400:
            raise FetchError(f"request failed ({status}): {url}")
        return FetchResult(url, status, body)

    def fetch(self, url: str) -> FetchResult:
        """GET ``url``, retrying challenge pages and transient failures.

        Raises:
            TooManyRetries: when the retry budget is spent
            FetchError: on a non-retryable failure
        """
        try:
            return self._get_with_retry(url)
        except RetryError as e:
            body = getattr(e.last_exception, "body", b"")
            dump_path = self._dump(url, body) if body else None
            raise TooManyRetries(url, e.attempts, dump_path) from e.last_exception
        except requests.exceptions.RequestException as e:
            raise FetchError(f"request error for {url}: {e}") from e

    def _dump(self, url: str, body: bytes) -> Optional[Path]:
        path = self.settings.dump_dir / f"store{_UNSAFE_PATH_CHARS.sub('-', url)}.html"
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(body)
        except OSError as e:
            self.log.warning(f"Could not save response of {url}: {e}")
            return None
        return path

    @contextmanager
    def stream(self, url: str, params: Optional[dict] = None) -> Iterator[requests.Response]:
        """Open a streaming GET. No retries; status >= 400 raises FetchError."""
        self.log.record("fetch")
        try:
            resp = self.session.get(url, params=params, stream=True, timeout=self.settings.timeout)
        except requests.exceptions.RequestException as e:
            raise FetchError(f"request error for {url}: {e}") from e
        try:
            if resp.status_code >= 400:
                raise FetchError(f"wrong status for getting {url}: {resp.status_code}")
            yield resp
        finally:
            resp.close()


def deduplicate_urls(urls: Iterable[str]) -> List[str]:
    """Deduplicate URLs while preserving order."""
    seen = set()
    result = []
    for url in urls:
        if url not in seen:
            seen.add(url)
            result.append(url)
    return result
