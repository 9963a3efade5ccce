import json
import threading
from html import escape
from pathlib import Path
from typing import List, Optional, TextIO

from .models import NO_LINK, RESOLVED, Entity, Resolution
from .normalize import normalize_name
from .schema import LOGO_FIELD, NAME_FIELD, validate_export

HTML_HEADER = """<!DOCTYPE html><html lang="en"><head><style>
body{display:flex;flex-wrap:wrap;background:moccasin}div{margin:5px;padding:5px;border:blue 1px solid;text-align:center}
img{width:300px;padding-top:5px}</style><meta charset="utf-8"><title>My Games</title></head><body>
"""
HTML_TRAILER = "</body></html>"

LINK_BLOCK = '<div><a href="{link}">{name}</a><br/><img src="{logo}"></div>\n'
NO_LINK_BLOCK = '<div><span>{name}</span><br/><img src="{logo}"></div>\n'


class InputError(ValueError):
    """The exported games file is missing or malformed."""


def load_games(path: Path) -> List[Entity]:
    """Read the exported games file. Names are trimmed."""
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise InputError(f"Cannot read games file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise InputError(f"Games file {path} is not valid JSON: {e}") from e

    errors = validate_export(data)
    if errors:
        raise InputError("Invalid games file:\n" + "\n".join(f" - {e}" for e in errors))

    return [
        Entity(name=normalize_name(app[NAME_FIELD]), logo=app[LOGO_FIELD])
        for app in data["data"]["applications"]
    ]


def render_block(entity: Entity, resolution: Resolution) -> str:
    if resolution.status == RESOLVED:
        return LINK_BLOCK.format(
            link=escape(resolution.url or "", quote=True),
            name=escape(entity.name),
            logo=escape(entity.logo, quote=True),
        )
    if resolution.status == NO_LINK:
        return NO_LINK_BLOCK.format(
            name=escape(resolution.text or entity.name),
            logo=escape(entity.logo, quote=True),
        )
    raise ValueError(f"nothing to write for status {resolution.status!r}")


class HtmlWriter:
    """Result page shared by all resolver threads; writes are serialized."""

    def __init__(self, stream: TextIO, owns_stream: bool = False):
        self._stream = stream
        self._owns_stream = owns_stream
        self._lock = threading.Lock()
        self._closed = False
        self.blocks = 0
        self._stream.write(HTML_HEADER)

    @classmethod
    def open(cls, path: Path) -> "HtmlWriter":
        path.parent.mkdir(parents=True, exist_ok=True)
        return cls(path.open("w", encoding="utf-8"), owns_stream=True)

    def write(self, entity: Entity, resolution: Resolution) -> bool:
        """Append the block for a result. Returns False if nothing was written."""
        if not resolution.writes_output:
            return False
        block = render_block(entity, resolution)
        with self._lock:
            if self._closed:
                raise ValueError("result page is already finalized")
            self._stream.write(block)
            self.blocks += 1
        return True

    def close(self):
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._stream.write(HTML_TRAILER)
            self._stream.flush()
            if self._owns_stream:
                self._stream.close()

    def __enter__(self) -> "HtmlWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        self.close()
        return None
