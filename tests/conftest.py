"""Shared fixtures: a throwaway project tree and a fake esbuild."""

from __future__ import annotations

import sys
import textwrap
from pathlib import Path

import pytest

from assetpipe.config import config_from_dict


FAKE_BUNDLER = textwrap.dedent(
    """
    import pathlib
    import sys

    args = sys.argv[1:]
    entry = pathlib.Path(args[0])
    out = pathlib.Path(next(a.split("=", 1)[1] for a in args if a.startswith("--outfile=")))
    src = entry.read_text()
    if "SYNTAX" in src:
        sys.stderr.write("ERROR: Expected ';' but found 'SYNTAX'\\n")
        sys.exit(1)
    body = "(function(){" + " ".join(src.split()) + "})();"
    if "--minify" in args:
        body = "/*min*/" + body.replace(" ", "")
    out.write_text(body)
    if "--sourcemap" in args:
        out.with_name(out.name + ".map").write_text("{}")
    """
)


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Minimal source tree with one stylesheet, one script and one page."""
    write(tmp_path / "src/scss/_colors.scss", "$accent: #ff0000;\n")
    write(
        tmp_path / "src/scss/main.scss",
        '@import "colors";\n.used { color: $accent; }\n.unused { color: blue; }\n',
    )
    write(tmp_path / "src/typescript/app.ts", "const greeting: string = 'hi';\nconsole.log(greeting);\n")
    write(
        tmp_path / "src/index.html",
        "<!DOCTYPE html>\n<html>\n<head>\n  <!-- styles -->\n"
        '  <link rel="stylesheet" href="css/main.css">\n</head>\n'
        '<body>\n  <p class="used">Hello   world</p>\n  <script src="js/app.js"></script>\n'
        "</body>\n</html>\n",
    )
    return tmp_path


@pytest.fixture
def fake_bundler(tmp_path_factory) -> list[str]:
    script = tmp_path_factory.mktemp("bin") / "fake_esbuild.py"
    script.write_text(FAKE_BUNDLER, encoding="utf-8")
    return [sys.executable, str(script)]


@pytest.fixture
def make_config(project: Path, fake_bundler: list[str]):
    def _make(data: dict | None = None, api_key: str | None = None):
        merged = {"bundler": fake_bundler}
        merged.update(data or {})
        return config_from_dict(merged, root=project, tinify_api_key=api_key)

    return _make


@pytest.fixture
def config(make_config):
    return make_config()
