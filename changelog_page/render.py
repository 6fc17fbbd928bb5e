from __future__ import annotations

import logging
from typing import List, Mapping, Sequence

from .changelog import VersionRecord
from .config import Source, category_style
from .formatting import escape_html, format_change_text


CALENDAR_ICON = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="14" height="14" viewBox="0 0 24 24" '
    'fill="none" stroke="currentColor" stroke-width="2" stroke-linecap="round" stroke-linejoin="round">'
    '<rect x="3" y="4" width="18" height="18" rx="2" ry="2"></rect>'
    '<line x1="16" y1="2" x2="16" y2="6"></line>'
    '<line x1="8" y1="2" x2="8" y2="6"></line>'
    '<line x1="3" y1="10" x2="21" y2="10"></line>'
    "</svg>"
)


def _category_title(name: str) -> str:
    return name[:1].upper() + name[1:]


def _render_category(name: str, changes: Sequence[str], repo_url: str) -> str:
    style = category_style(name)
    items = "".join(f"<li>{format_change_text(change, repo_url)}</li>" for change in changes)
    return (
        '<div class="change-group">'
        '<div class="change-category">'
        f'<span class="category-icon {style.css_class}">{style.icon}</span>'
        f"<span>{escape_html(_category_title(name))}</span>"
        "</div>"
        f'<ul class="change-list">{items}</ul>'
        "</div>"
    )


def render_version_card(record: VersionRecord, repo_url: str) -> str:
    release_url = f"{repo_url}/releases/tag/v{record.version}"
    source = record.source.value
    groups = "".join(
        _render_category(name, changes, repo_url)
        for name, changes in record.categories.items()
        if changes
    )
    return (
        f'<div class="version-card" data-type="{source}" data-dev="{str(record.is_prerelease).lower()}">'
        '<div class="version-header">'
        '<div class="version-title">'
        f'<a href="{escape_html(release_url)}" target="_blank" rel="noopener noreferrer" class="version-link">'
        f"v{escape_html(record.version)}"
        "</a>"
        f'<span class="type-badge {source}">{record.source.label}</span>'
        "</div>"
        f'<div class="version-date">{CALENDAR_ICON}{escape_html(record.date)}</div>'
        "</div>"
        f'<div class="changes-section">{groups}</div>'
        "</div>\n"
    )


def render_versions(records: Sequence[VersionRecord], repo_urls: Mapping[Source, str]) -> str:
    cards: List[str] = [render_version_card(r, repo_urls[r.source]) for r in records]
    logging.debug(f"Rendered {len(cards)} version cards")
    return "".join(cards)
