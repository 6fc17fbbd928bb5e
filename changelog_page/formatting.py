from __future__ import annotations

import re
from typing import List


ISSUE_REF_RE = re.compile(r"\(#(\d+)\)")
COMMIT_REF_RE = re.compile(r"\(([a-f0-9]{7,8})\)")
TAG_RE = re.compile(r"<[^>]*>")
MASK_RE = re.compile(r"\x00(\d+)\x00")

EMPHASIS_RULES = (
    (re.compile(r"\*\*(.+?)\*\*"), r"<strong>\1</strong>"),
    (re.compile(r"__(.+?)__"), r"<strong>\1</strong>"),
    (re.compile(r"\*(.+?)\*"), r"<em>\1</em>"),
    (re.compile(r"_(.+?)_"), r"<em>\1</em>"),
    (re.compile(r"`(.+?)`"), r"<code>\1</code>"),
)

_HTML_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&#039;"),
)


def escape_html(text: str) -> str:
    for char, entity in _HTML_ESCAPES:
        text = text.replace(char, entity)
    return text


def _anchor(href: str, label: str) -> str:
    return f'<a href="{href}" target="_blank" rel="noopener noreferrer">{label}</a>'


def format_links(text: str, repo_url: str) -> str:
    """Turn ``(#123)`` issue and ``(abc1234)`` commit references into links."""
    text = ISSUE_REF_RE.sub(lambda m: f"({_anchor(f'{repo_url}/issues/{m.group(1)}', '#' + m.group(1))})", text)
    text = COMMIT_REF_RE.sub(lambda m: f"({_anchor(f'{repo_url}/commit/{m.group(1)}', m.group(1))})", text)
    return text


def format_markdown(text: str) -> str:
    # Tags are masked while the rules run so attributes like target="_blank" survive.
    tags: List[str] = []

    def mask(m: re.Match) -> str:
        tags.append(m.group(0))
        return f"\x00{len(tags) - 1}\x00"

    text = TAG_RE.sub(mask, text.replace("\x00", ""))
    for pattern, replacement in EMPHASIS_RULES:
        text = pattern.sub(replacement, text)
    return MASK_RE.sub(lambda m: tags[int(m.group(1))], text)


def format_change_text(raw: str, repo_url: str) -> str:
    """Render one change description as HTML.

    Escaping runs first, over the raw text, so nothing from upstream reaches
    the page unescaped. Links are synthesized before emphasis.
    """
    return format_markdown(format_links(escape_html(raw), repo_url))
