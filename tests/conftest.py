"""
Pytest configuration and shared fixtures.
"""

import json
import threading
from html import escape
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from gamelinks.config import Settings
from gamelinks.disambiguation import SelectionError
from gamelinks.scrapers.common import CHALLENGE_MARKER, NOT_FOUND_MARKER

STORE = "https://store.epicgames.com"


class FakeResponse:
    """Just enough of requests.Response for the scrapers."""

    def __init__(self, content: bytes = b"<html></html>", status_code: int = 200, chunk_log: Optional[list] = None):
        self.content = content
        self.status_code = status_code
        self.closed = False
        self.chunk_log = chunk_log

    def iter_content(self, chunk_size: int = 1):
        for i in range(0, len(self.content), chunk_size):
            chunk = self.content[i:i + chunk_size]
            if self.chunk_log is not None:
                self.chunk_log.append(chunk)
            yield chunk

    def close(self):
        self.closed = True


class FakeSession:
    """Serves canned responses by URL prefix; the longest prefix wins.

    A list value is consumed one response per request, repeating the last.
    """

    def __init__(self, routes: Optional[Dict[str, object]] = None, default: Optional[FakeResponse] = None):
        self.routes = dict(routes or {})
        self.default = default
        self.headers: Dict[str, str] = {}
        self.calls: List[Tuple[str, Optional[dict]]] = []
        self._lock = threading.Lock()

    def get(self, url, params=None, timeout=None, stream=False):
        with self._lock:
            self.calls.append((url, params))
            for prefix in sorted(self.routes, key=len, reverse=True):
                if url.startswith(prefix):
                    value = self.routes[prefix]
                    if isinstance(value, list):
                        value = value.pop(0) if len(value) > 1 else value[0]
                    if isinstance(value, Exception):
                        raise value
                    return value
        if self.default is None:
            raise AssertionError(f"unexpected request: {url}")
        return self.default

    def urls(self) -> List[str]:
        return [u for u, _ in self.calls]


class RecordingLog:
    """Stands in for StructuredLogger / LogChannel."""

    def __init__(self):
        self.messages: List[Tuple[str, str]] = []
        self.metrics: List[tuple] = []
        self._lock = threading.Lock()

    def _add(self, level, message):
        with self._lock:
            self.messages.append((level, message))

    def debug(self, message, **kwargs):
        self._add("debug", message)

    def info(self, message, **kwargs):
        self._add("info", message)

    def warning(self, message, **kwargs):
        self._add("warning", message)

    def error(self, message, **kwargs):
        self._add("error", message)

    def record(self, metric, *args):
        with self._lock:
            self.metrics.append((metric,) + args)

    def start(self):
        return self

    def close(self):
        pass

    def text(self, level: Optional[str] = None) -> str:
        return "\n".join(m for lvl, m in self.messages if level is None or lvl == level)


class ScriptedPrompter:
    """Answers menus from a script.

    Each answer is either an option text (picked by exact match), an int
    index, or None to simulate a missing selection.
    """

    def __init__(self, picks: Sequence = (), typed: Sequence[str] = ()):
        self.picks = list(picks)
        self.typed = list(typed)
        self.menus: List[Tuple[str, List[str]]] = []
        self.questions: List[str] = []
        self._lock = threading.Lock()

    def pick(self, title, options):
        with self._lock:
            self.menus.append((title, list(options)))
            if not self.picks:
                raise SelectionError(f"no answer scripted for {title!r}")
            answer = self.picks.pop(0)
        if answer is None:
            raise SelectionError("you didn't select anything")
        if isinstance(answer, int):
            return answer
        return options.index(answer)

    def ask(self, question):
        with self._lock:
            self.questions.append(question)
            return self.typed.pop(0) if self.typed else ""


def search_page(items: Sequence[Tuple[str, str]]) -> bytes:
    """Minified search result page with (aria-label, href) items."""
    lis = "".join(
        f'<li><div><div><a aria-label="{escape(label, quote=True)}" href="{href}"><span>x</span></a></div></div></li>'
        for label, href in items
    )
    return (
        "<html><body><main><section><section><ul>"
        f"{lis}"
        "</ul></section></section></main></body></html>"
    ).encode()


def label(name: str) -> str:
    """Three-part aria-label, the title in second position."""
    return f"Base Game, {name}, $19.99"


def not_found_page() -> bytes:
    return b'<html><head><link rel="canonical" href="' + NOT_FOUND_MARKER + b'"></head></html>'


def challenge_page() -> bytes:
    return b"<html><head>" + CHALLENGE_MARKER + b"</head><body>checking</body></html>"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(backoff=0.0, dispatch_delay=0.0, dump_dir=tmp_path / "dumps", log_dir=tmp_path / "logs")


@pytest.fixture
def log() -> RecordingLog:
    return RecordingLog()


@pytest.fixture
def export_file(tmp_path) -> Path:
    path = tmp_path / "games.json"
    data = {
        "data": {
            "applications": [
                {"applicationName": "  Foo Bar ", "logo": "https://img.example/foo.png"},
                {"applicationName": "Baz: Extended Cut", "logo": "https://img.example/baz.png"},
            ]
        }
    }
    path.write_text(json.dumps(data))
    return path
