"""
Tests for reading the export file and writing the result page.
"""

import io
import json
import threading

import pytest

from gamelinks.models import Entity, Resolution
from gamelinks.storage import HTML_HEADER, HTML_TRAILER, HtmlWriter, InputError, load_games, render_block


class TestLoadGames:
    def test_reads_and_trims_names(self, export_file):
        games = load_games(export_file)
        assert games == [
            Entity("Foo Bar", "https://img.example/foo.png"),
            Entity("Baz: Extended Cut", "https://img.example/baz.png"),
        ]

    def test_missing_file(self, tmp_path):
        with pytest.raises(InputError, match="Cannot read"):
            load_games(tmp_path / "nope.json")

    def test_bad_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(InputError, match="not valid JSON"):
            load_games(path)

    def test_schema_errors_are_listed(self, tmp_path):
        path = tmp_path / "games.json"
        path.write_text(json.dumps({"data": {"applications": [{"logo": "x"}]}}))
        with pytest.raises(InputError) as exc:
            load_games(path)
        assert "applicationName" in str(exc.value)

    def test_input_error_is_a_value_error(self):
        assert issubclass(InputError, ValueError)


class TestRenderBlock:
    def test_link_block(self):
        block = render_block(Entity("Foo", "https://img/foo.png"), Resolution.resolved("https://store/p/foo", "Foo"))
        assert block == '<div><a href="https://store/p/foo">Foo</a><br/><img src="https://img/foo.png"></div>\n'

    def test_no_link_block(self):
        block = render_block(Entity("Foo", "https://img/foo.png"), Resolution.no_link("Foo"))
        assert block == '<div><span>Foo</span><br/><img src="https://img/foo.png"></div>\n'

    def test_markup_is_escaped(self):
        block = render_block(Entity("Tom & <Jerry>", 'x"y'), Resolution.resolved("https://s/?a=1&b=2", ""))
        assert "Tom &amp; &lt;Jerry&gt;" in block
        assert 'href="https://s/?a=1&amp;b=2"' in block
        assert 'src="x&quot;y"' in block

    @pytest.mark.parametrize("resolution", [Resolution.skipped(), Resolution.failed("boom")])
    def test_nothing_to_render(self, resolution):
        with pytest.raises(ValueError):
            render_block(Entity("Foo", "x"), resolution)


class TestHtmlWriter:
    def test_header_blocks_trailer(self):
        out = io.StringIO()
        with HtmlWriter(out) as writer:
            assert writer.write(Entity("Foo", "x"), Resolution.resolved("https://s/foo", "Foo"))
            assert writer.write(Entity("Bar", "y"), Resolution.no_link("Bar"))

        page = out.getvalue()
        assert page.startswith(HTML_HEADER)
        assert page.endswith(HTML_TRAILER)
        assert page.count("<div>") == 2
        assert writer.blocks == 2
        assert "<title>My Games</title>" in page

    def test_skipped_and_failed_write_nothing(self):
        out = io.StringIO()
        writer = HtmlWriter(out)
        assert not writer.write(Entity("Foo", "x"), Resolution.skipped())
        assert not writer.write(Entity("Foo", "x"), Resolution.failed("boom"))
        writer.close()
        assert out.getvalue() == HTML_HEADER + HTML_TRAILER

    def test_write_after_close(self):
        writer = HtmlWriter(io.StringIO())
        writer.close()
        with pytest.raises(ValueError):
            writer.write(Entity("Foo", "x"), Resolution.no_link("Foo"))

    def test_close_is_idempotent(self):
        out = io.StringIO()
        writer = HtmlWriter(out)
        writer.close()
        writer.close()
        assert out.getvalue().count(HTML_TRAILER) == 1

    def test_open_creates_and_closes_file(self, tmp_path):
        path = tmp_path / "out" / "games.html"
        with HtmlWriter.open(path) as writer:
            writer.write(Entity("Foo", "x"), Resolution.no_link("Foo"))
        assert path.read_text(encoding="utf-8").endswith(HTML_TRAILER)

    def test_blocks_never_interleave(self):
        out = io.StringIO()
        writer = HtmlWriter(out)
        names = [f"Game {i}" for i in range(40)]

        def write(name):
            writer.write(Entity(name, "x"), Resolution.no_link(name))

        threads = [threading.Thread(target=write, args=(n,)) for n in names]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        writer.close()

        body = out.getvalue()[len(HTML_HEADER):-len(HTML_TRAILER)]
        lines = body.splitlines()
        assert len(lines) == 40
        assert sorted(lines) == sorted(f'<div><span>{n}</span><br/><img src="x"></div>' for n in names)
