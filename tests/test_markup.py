"""Tests for the HTML stage."""

import asyncio

from assetpipe.config import Mode
from assetpipe.tasks.markup import minify_markup, optimize_markup
from conftest import write


def test_minify_strips_comments_and_collapses_whitespace() -> None:
    html = (
        "<html><head><title>T</title></head><body>\n"
        "  <!-- internal note -->\n"
        "  <p>Hello   world</p>\n"
        "</body></html>"
    )
    out = minify_markup(html)
    assert "internal note" not in out
    assert "Hello world" in out
    assert "</body>" in out
    assert "\n" not in out


def test_stage_writes_pages_under_dist(config, project) -> None:
    write(project / "src/pages/about.html", "<p>About</p>\n")
    written = asyncio.run(optimize_markup(config, Mode.PROD))
    assert written == [project / "dist/index.html", project / "dist/pages/about.html"]
    index = (project / "dist/index.html").read_text()
    assert "<!--" not in index
    assert "css/main.css" in index
