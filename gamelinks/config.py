"""Runtime settings, read from GAMELINKS_* environment variables."""

import os
import tempfile
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Optional

ENV_PREFIX = "GAMELINKS_"

STORE_HOST = "https://store.epicgames.com"
LENS_HOST = "https://lens.google.com"


@dataclass(frozen=True)
class Settings:
    workers: int = 5
    dispatch_delay: float = 0.3
    retries: int = 3
    backoff: float = 0.3
    page_size: int = 40
    chunk_size: int = 1024
    store_host: str = STORE_HOST
    store_locale: str = "en-US"
    lens_host: str = LENS_HOST
    lens_locale: str = "en-CA"
    dump_dir: Path = field(default_factory=lambda: Path(tempfile.gettempdir()))
    timeout: float = 20.0
    log_level: str = "INFO"
    log_dir: Path = Path("logs")

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "Settings":
        """Build settings from the environment, falling back to defaults.

        Raises ValueError when a variable cannot be converted.
        """
        environ = os.environ if environ is None else environ
        defaults = cls()
        values = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw.strip() == "":
                continue
            current = getattr(defaults, f.name)
            try:
                if isinstance(current, Path):
                    values[f.name] = Path(raw)
                else:
                    values[f.name] = type(current)(raw.strip())
            except ValueError:
                raise ValueError(f"Invalid value for {ENV_PREFIX}{f.name.upper()}: {raw!r}")
        settings = replace(defaults, **values)
        settings.validate()
        return settings

    def validate(self) -> None:
        if self.workers < 1:
            raise ValueError("workers must be at least 1")
        if self.retries < 1:
            raise ValueError("retries must be at least 1")
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be positive")
        if self.dispatch_delay < 0 or self.backoff < 0:
            raise ValueError("delays must not be negative")

    def with_overrides(self, **overrides) -> "Settings":
        """Return a copy with the non-None overrides applied."""
        settings = replace(self, **{k: v for k, v in overrides.items() if v is not None})
        settings.validate()
        return settings
