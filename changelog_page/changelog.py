from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .config import DEFAULT_PRERELEASE_MARKERS, Source


FENCE = "```"
VERSION_HEADER_RE = re.compile(
    r"^#{1,2}\s+(?:\w+\s+)?\[(?P<version>[^\]]+)\]\((?P<link>[^)]+)\)\s*\(?(?P<date>[^)]+)\)?"
)
CATEGORY_HEADER_RE = re.compile(r"^###\s+(?P<name>.+)")
INLINE_LINK_RE = re.compile(r"\[([^\]]+)\]\([^)]+\)")


class LineKind(Enum):
    FENCE = "fence"
    BLANK = "blank"
    VERSION = "version"
    CATEGORY = "category"
    CHANGE = "change"
    OTHER = "other"


@dataclass(frozen=True)
class ClassifiedLine:
    kind: LineKind
    text: str
    match: Optional[re.Match] = None


def classify_line(line: str) -> ClassifiedLine:
    """Tag a raw line. Precedence: fence, blank, version, category, change."""
    text = line.strip()
    if text.startswith(FENCE):
        return ClassifiedLine(LineKind.FENCE, text)
    if not text:
        return ClassifiedLine(LineKind.BLANK, text)
    m = VERSION_HEADER_RE.match(text)
    if m:
        return ClassifiedLine(LineKind.VERSION, text, m)
    m = CATEGORY_HEADER_RE.match(text)
    if m:
        return ClassifiedLine(LineKind.CATEGORY, text, m)
    if text.startswith("-") or text.startswith("*"):
        return ClassifiedLine(LineKind.CHANGE, text)
    return ClassifiedLine(LineKind.OTHER, text)


@dataclass(frozen=True)
class VersionRecord:
    version: str
    link: str
    date: str
    source: Source
    is_prerelease: bool
    categories: Mapping[str, Tuple[str, ...]] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def sort_key(self) -> datetime:
        return parse_date(self.date)


def is_prerelease(version: str, markers: Iterable[str] = DEFAULT_PRERELEASE_MARKERS) -> bool:
    return any(marker in version for marker in markers)


@dataclass
class _OpenVersion:
    version: str
    link: str
    date: str
    categories: Dict[str, List[str]] = field(default_factory=dict)

    def close(self, source: Source, markers: Sequence[str]) -> VersionRecord:
        return VersionRecord(
            version=self.version,
            link=self.link,
            date=self.date,
            source=source,
            is_prerelease=is_prerelease(self.version, markers),
            categories=MappingProxyType({k: tuple(v) for k, v in self.categories.items()}),
        )


def parse_changelog(
    markdown: str,
    source: Source,
    prerelease_markers: Sequence[str] = DEFAULT_PRERELEASE_MARKERS,
) -> List[VersionRecord]:
    records: List[VersionRecord] = []
    current: _OpenVersion | None = None
    current_category: str | None = None
    in_code_block = False

    for raw in markdown.splitlines():
        line = classify_line(raw)

        if line.kind is LineKind.FENCE:
            in_code_block = not in_code_block
            continue
        if in_code_block or line.kind is LineKind.BLANK:
            continue

        if line.kind is LineKind.VERSION:
            if current is not None:
                records.append(current.close(source, prerelease_markers))
            m = line.match
            current = _OpenVersion(
                version=m.group("version").strip().removeprefix("v"),
                link=m.group("link").strip(),
                date=m.group("date").strip(),
            )
            current_category = None
            continue

        if current is None:
            continue

        if line.kind is LineKind.CATEGORY:
            current_category = line.match.group("name").lower().strip()
            current.categories.setdefault(current_category, [])
        elif line.kind is LineKind.CHANGE and current_category is not None:
            change = INLINE_LINK_RE.sub(r"\1", line.text[1:].strip())
            if change:
                current.categories[current_category].append(change)

    if current is not None:
        records.append(current.close(source, prerelease_markers))

    logging.debug(f"Parsed {len(records)} versions from {source.value} changelog")
    return records


def parse_date(token: str) -> datetime:
    """Parse an ISO-8601 date token; anything unparseable sorts as the oldest."""
    text = token.strip()
    if text.endswith(("Z", "z")):
        # fromisoformat only accepts a Z suffix from Python 3.11 on
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logging.debug(f"Unparseable release date {token!r}, sorting it last")
        return datetime.min
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _newest_first(records: Iterable[VersionRecord]) -> List[VersionRecord]:
    # sorted() is stable with reverse=True, equal dates keep their input order
    return sorted(records, key=lambda r: r.sort_key, reverse=True)


def select_versions(records: Sequence[VersionRecord], max_stable: int) -> List[VersionRecord]:
    """Keep the ``max_stable`` newest stable releases plus every pre-release.

    The result is stable releases followed by pre-releases, each newest
    first; callers re-sort it globally with :func:`aggregate_versions`.
    """
    stable = _newest_first(r for r in records if not r.is_prerelease)[: max(max_stable, 0)]
    prerelease = _newest_first(r for r in records if r.is_prerelease)
    return stable + prerelease


def aggregate_versions(per_source: Iterable[Sequence[VersionRecord]]) -> List[VersionRecord]:
    combined: List[VersionRecord] = []
    for records in per_source:
        combined.extend(records)
    return _newest_first(combined)
