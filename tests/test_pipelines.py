"""End-to-end runs of the prod and clean pipelines on a small source tree."""

import asyncio
from pathlib import Path

import pytest

from assetpipe.errors import SourceSyntaxError
from assetpipe.registry import build_registry
from conftest import write

SVG = '<svg xmlns="http://www.w3.org/2000/svg" width="4" height="4"><!-- x --><rect width="4" height="4"/></svg>'


def run(config, name):
    return asyncio.run(build_registry(config)[name].run(config))


def dist_snapshot(root: Path) -> dict[str, bytes]:
    dist = root / "dist"
    return {p.relative_to(dist).as_posix(): p.read_bytes() for p in sorted(dist.rglob("*")) if p.is_file()}


def test_prod_builds_optimised_site(config, project) -> None:
    write(project / "src/images/icon.svg", SVG)

    results = run(config, "prod")

    assert list(results) == [
        "clean", "styles", "scripts", "images", "svg", "markup", "references", "purge",
    ]
    assert results["images"] == []
    files = dist_snapshot(project)
    assert set(files) == {
        "css/main.min.css",
        "js/app.min.js",
        "images/icon.svg",
        "index.html",
    }
    index = files["index.html"].decode()
    assert "main.min.css" in index and "app.min.js" in index
    assert "main.css" not in index.replace("main.min.css", "")
    css = files["css/main.min.css"].decode()
    assert ".used{" in css
    assert ".unused" not in css


def test_prod_is_deterministic(config, project) -> None:
    run(config, "prod")
    first = dist_snapshot(project)
    run(config, "prod")
    assert dist_snapshot(project) == first


def test_prod_leaves_no_stale_artifacts(config, project) -> None:
    write(project / "dist/old-page.html", "<p>stale</p>")
    write(project / "src/js/app.js", "dev build")
    run(config, "prod")
    assert not (project / "dist/old-page.html").exists()
    assert not (project / "src/js").exists()


def test_prod_stops_at_first_failure(config, project) -> None:
    write(project / "src/scss/main.scss", ".used { color: red;\n")
    with pytest.raises(SourceSyntaxError):
        run(config, "prod")
    assert not (project / "dist/js").exists()
    assert not (project / "dist/index.html").exists()


def test_clean_twice(config, project) -> None:
    run(config, "prod")
    run(config, "clean")
    assert not (project / "dist").exists()
    assert run(config, "clean") == {"clean": []}
