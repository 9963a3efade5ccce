"""
Tests for settings and environment loading.
"""

import os
from pathlib import Path

import pytest

from gamelinks.config import Settings
from gamelinks.env import load_env


class TestSettings:
    def test_defaults(self):
        s = Settings()
        assert s.workers == 5
        assert s.dispatch_delay == 0.3
        assert s.retries == 3
        assert s.page_size == 40
        assert s.chunk_size == 1024
        assert s.store_host == "https://store.epicgames.com"

    def test_from_env(self):
        s = Settings.from_env({
            "GAMELINKS_WORKERS": "2",
            "GAMELINKS_DISPATCH_DELAY": "0.5",
            "GAMELINKS_LOG_DIR": "/tmp/gl-logs",
            "GAMELINKS_STORE_LOCALE": "en-GB",
            "GAMELINKS_RETRIES": "  ",
        })
        assert s.workers == 2
        assert s.dispatch_delay == 0.5
        assert s.log_dir == Path("/tmp/gl-logs")
        assert s.store_locale == "en-GB"
        assert s.retries == 3

    def test_unrelated_variables_ignored(self):
        assert Settings.from_env({"WORKERS": "9", "PATH": "/bin"}) == Settings()

    def test_bad_number(self):
        with pytest.raises(ValueError, match="GAMELINKS_WORKERS"):
            Settings.from_env({"GAMELINKS_WORKERS": "many"})

    @pytest.mark.parametrize("env", [
        {"GAMELINKS_WORKERS": "0"},
        {"GAMELINKS_RETRIES": "0"},
        {"GAMELINKS_CHUNK_SIZE": "0"},
        {"GAMELINKS_DISPATCH_DELAY": "-1"},
    ])
    def test_out_of_range(self, env):
        with pytest.raises(ValueError):
            Settings.from_env(env)

    def test_overrides_skip_none(self):
        s = Settings().with_overrides(workers=3, dispatch_delay=None)
        assert s.workers == 3
        assert s.dispatch_delay == 0.3

    def test_overrides_are_validated(self):
        with pytest.raises(ValueError):
            Settings().with_overrides(workers=0)

    def test_settings_are_frozen(self):
        with pytest.raises(Exception):
            Settings().workers = 9


class TestLoadEnv:
    def test_loads_file_without_overriding(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("GAMELINKS_WORKERS=2\nGAMELINKS_RETRIES=7\n")
        environ = {k: v for k, v in os.environ.items() if not k.startswith("GAMELINKS_")}
        environ["GAMELINKS_RETRIES"] = "4"
        monkeypatch.setattr(os, "environ", environ)

        assert load_env(env_file)

        s = Settings.from_env()
        assert s.workers == 2
        assert s.retries == 4
