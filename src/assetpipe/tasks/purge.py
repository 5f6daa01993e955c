"""Remove CSS rules whose selectors are not used by the built markup/scripts.

Usage is decided the way PurgeCSS's default extractor does it: the content
files are split into `[A-Za-z0-9_-]+` tokens and a selector survives when
every class, id and element name it mentions is one of those tokens.
The purged stylesheet is written back as-is, without another minify pass.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable

import tinycss2
from tinycss2 import ast

from ..config import BuildConfig, Mode
from ..core import stage
from ..logging import get_logger
from ..utils import expand_glob, expand_globs


log = get_logger("assetpipe.tasks.purge")

_TOKEN = re.compile(r"[A-Za-z0-9_-]+")
# at-rules whose block holds nested style rules
_GROUPING_AT_RULES = {"media", "supports", "layer", "container", "document"}


def extract_tokens(text: str) -> set[str]:
    return set(_TOKEN.findall(text))


def _split_selectors(prelude: list) -> list[list]:
    groups: list[list] = [[]]
    for tok in prelude:
        if tok.type == "literal" and tok.value == ",":
            groups.append([])
        else:
            groups[-1].append(tok)
    return [_strip_ws(g) for g in groups if _strip_ws(g)]


def _strip_ws(tokens: list) -> list:
    start, end = 0, len(tokens)
    while start < end and tokens[start].type in ("whitespace", "comment"):
        start += 1
    while end > start and tokens[end - 1].type in ("whitespace", "comment"):
        end -= 1
    return tokens[start:end]


def selector_names(tokens: list) -> tuple[set[str], set[str], set[str]]:
    """Classes, ids and element names referenced by one selector."""
    classes: set[str] = set()
    ids: set[str] = set()
    tags: set[str] = set()
    prev = None
    for tok in tokens:
        if tok.type == "ident":
            if prev is not None and prev.type == "literal" and prev.value == ".":
                classes.add(tok.value)
            elif prev is not None and prev.type == "literal" and prev.value == ":":
                pass  # pseudo-class / pseudo-element
            else:
                tags.add(tok.value.lower())
        elif tok.type == "hash":
            ids.add(tok.value)
        prev = tok
    return classes, ids, tags


def selector_is_used(
    tokens: list, used: set[str], safelist: set[str], lowered: set[str] | None = None
) -> bool:
    classes, ids, tags = selector_names(tokens)
    if lowered is None:
        lowered = {u.lower() for u in used}
    for name in classes | ids:
        if name not in used and name not in safelist:
            return False
    for name in tags:
        if name not in lowered and name not in safelist:
            return False
    return True


def _purge_rules(
    rules: Iterable, used: set[str], safelist: set[str], lowered: set[str]
) -> list[str]:
    out: list[str] = []
    for rule in rules:
        if isinstance(rule, ast.QualifiedRule):
            kept = [
                tinycss2.serialize(sel)
                for sel in _split_selectors(rule.prelude)
                if selector_is_used(sel, used, safelist, lowered)
            ]
            if kept:
                out.append(",".join(kept) + "{" + tinycss2.serialize(rule.content) + "}")
        elif isinstance(rule, ast.AtRule):
            if rule.lower_at_keyword in _GROUPING_AT_RULES and rule.content is not None:
                inner = _purge_rules(
                    tinycss2.parse_rule_list(rule.content, skip_comments=True, skip_whitespace=True),
                    used,
                    safelist,
                    lowered,
                )
                if inner:
                    prelude = tinycss2.serialize(rule.prelude)
                    out.append(f"@{rule.at_keyword}{prelude}{{{''.join(inner)}}}")
            else:
                out.append(rule.serialize())
        elif isinstance(rule, ast.ParseError):
            log.warning(
                "Dropping unparsable CSS at %s:%s: %s",
                rule.source_line,
                rule.source_column,
                rule.message,
            )
    return out


def purge_css(css: str, used: set[str], safelist: Iterable[str] = ()) -> str:
    rules = tinycss2.parse_stylesheet(css, skip_comments=True, skip_whitespace=True)
    return "".join(_purge_rules(rules, used, set(safelist), {u.lower() for u in used}))


@stage(name="purge")
async def purge_styles(config: BuildConfig, mode: Mode) -> list[Path]:
    spec = config.spec("styles", Mode.PROD)
    css_dir = config.path(spec.output_dir)
    stylesheets = expand_glob("**/*.min.css", css_dir) if css_dir.exists() else []
    content = expand_globs(config.purge_content, config.root)
    used: set[str] = set()
    for f in content:
        used |= extract_tokens(f.read_text(encoding="utf-8", errors="replace"))

    written: list[Path] = []
    for sheet in stylesheets:
        before = sheet.read_text(encoding="utf-8")
        after = purge_css(before, used, config.purge_safelist)
        sheet.write_text(after, encoding="utf-8")
        written.append(sheet)
        log.info("Purged %s: %d -> %d bytes", sheet.name, len(before), len(after))
    return written
