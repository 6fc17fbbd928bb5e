"""Tests for changelog parsing, selection and aggregation."""

from __future__ import annotations

from datetime import datetime

from changelog_page.changelog import (
    LineKind,
    VersionRecord,
    aggregate_versions,
    classify_line,
    parse_changelog,
    parse_date,
    select_versions,
)
from changelog_page.config import Source


SAMPLE = """\
# Changelog

# app [1.3.0-dev.2](https://github.com/o/manager/compare/v1.2.0...v1.3.0-dev.2) (2024-03-01)

### Features

* add dark mode ([#12](https://github.com/o/manager/issues/12)) ([abc1234](https://github.com/o/manager/commit/abc1234))

## [1.2.0](https://github.com/o/manager/compare/v1.1.0...v1.2.0) (2024-02-01)

### Bug Fixes

- Fixed thing
- crash on start (#42)

```markdown
## [9.9.9](https://example.com) (2030-01-01)
### Features
- not a real change
```

### Features

- New setting

### bug fixes

- Another fix
"""


def _record(version: str, date: str, prerelease: bool = False, source: Source = Source.MANAGER) -> VersionRecord:
    return VersionRecord(
        version=version,
        link=f"https://example.com/{version}",
        date=date,
        source=source,
        is_prerelease=prerelease,
    )


def test_classify_line_precedence() -> None:
    """Fences win over headings, headings over bullets."""
    assert classify_line("  ```python").kind is LineKind.FENCE
    assert classify_line("   ").kind is LineKind.BLANK
    assert classify_line("## [1.0.0](http://x) (2024-01-01)").kind is LineKind.VERSION
    assert classify_line("### Features").kind is LineKind.CATEGORY
    assert classify_line("- change").kind is LineKind.CHANGE
    assert classify_line("* change").kind is LineKind.CHANGE
    assert classify_line("Some prose").kind is LineKind.OTHER
    assert classify_line("## Unreleased").kind is LineKind.OTHER


def test_parse_single_version() -> None:
    markdown = "## [1.2.0](http://x/rel) (2024-01-01)\n### Bug Fixes\n- Fixed thing\n"

    records = parse_changelog(markdown, Source.PATCHES)

    assert len(records) == 1
    record = records[0]
    assert record.version == "1.2.0"
    assert record.link == "http://x/rel"
    assert record.date == "2024-01-01"
    assert record.source is Source.PATCHES
    assert record.is_prerelease is False
    assert dict(record.categories) == {"bug fixes": ("Fixed thing",)}


def test_parse_sample_changelog() -> None:
    records = parse_changelog(SAMPLE, Source.MANAGER)

    assert [r.version for r in records] == ["1.3.0-dev.2", "1.2.0"]
    dev, stable = records
    assert dev.is_prerelease is True
    assert dev.date == "2024-03-01"
    # inline links are reduced to their text
    assert dict(dev.categories) == {"features": ("add dark mode (#12) (abc1234)",)}
    # duplicate category names accumulate, insertion order is first-seen
    assert list(stable.categories) == ["bug fixes", "features"]
    assert stable.categories["bug fixes"] == ("Fixed thing", "crash on start (#42)", "Another fix")
    assert stable.categories["features"] == ("New setting",)


def test_fenced_heading_does_not_open_version() -> None:
    markdown = "```\n## [9.9.9](http://x) (2030-01-01)\n### Features\n- hidden\n```\n"

    assert parse_changelog(markdown, Source.MANAGER) == []


def test_bullet_before_category_is_dropped() -> None:
    markdown = "## [1.0.0](http://x) (2024-01-01)\n- orphan\n### Features\n- kept\n"

    records = parse_changelog(markdown, Source.MANAGER)

    assert dict(records[0].categories) == {"features": ("kept",)}


def test_lines_before_first_heading_are_ignored() -> None:
    markdown = "### Features\n- stray\n## [1.0.0](http://x) (2024-01-01)\n"

    records = parse_changelog(markdown, Source.MANAGER)

    assert len(records) == 1
    assert dict(records[0].categories) == {}


def test_empty_category_is_kept_and_blank_bullet_skipped() -> None:
    markdown = "## [1.0.0](http://x) (2024-01-01)\n### Perf\n-   \n"

    records = parse_changelog(markdown, Source.MANAGER)

    assert dict(records[0].categories) == {"perf": ()}


def test_parse_is_idempotent() -> None:
    assert parse_changelog(SAMPLE, Source.MANAGER) == parse_changelog(SAMPLE, Source.MANAGER)


def test_custom_prerelease_markers() -> None:
    markdown = "## [2.0.0-rc.1](http://x) (2024-01-01)\n"

    default = parse_changelog(markdown, Source.MANAGER)
    custom = parse_changelog(markdown, Source.MANAGER, prerelease_markers=("-rc",))

    assert default[0].is_prerelease is False
    assert custom[0].is_prerelease is True


def test_malformed_input_does_not_raise() -> None:
    markdown = "## [broken(http://x\n### \n* \n```\nunterminated fence\n"

    assert parse_changelog(markdown, Source.MANAGER) == []


def test_parse_date_handles_iso_and_garbage() -> None:
    assert parse_date("2024-01-01") == datetime(2024, 1, 1)
    assert parse_date("2024-01-01T12:00:00+02:00") == datetime(2024, 1, 1, 10, 0, 0)
    assert parse_date("yesterday") == datetime.min


def test_select_caps_stable_and_keeps_prereleases() -> None:
    stable = [
        _record("1.0.0", "2024-01-01"),
        _record("1.4.0", "2024-05-01"),
        _record("1.1.0", "2024-02-01"),
        _record("1.3.0", "2024-04-01"),
        _record("1.2.0", "2024-03-01"),
    ]
    dev = _record("1.5.0-dev.1", "2024-01-15", prerelease=True)

    selected = select_versions(stable + [dev], max_stable=2)

    assert [r.version for r in selected] == ["1.4.0", "1.3.0", "1.5.0-dev.1"]


def test_select_never_caps_prereleases() -> None:
    devs = [_record(f"1.0.0-dev.{i}", f"2024-01-0{i}", prerelease=True) for i in range(1, 6)]

    selected = select_versions(devs, max_stable=0)

    assert [r.version for r in selected] == [f"1.0.0-dev.{i}" for i in range(5, 0, -1)]


def test_select_sorts_unparseable_dates_last() -> None:
    records = [_record("0.1.0", "someday"), _record("0.2.0", "2023-06-01")]

    assert [r.version for r in select_versions(records, 5)] == ["0.2.0", "0.1.0"]


def test_aggregate_orders_by_date_and_keeps_ties_stable() -> None:
    manager = [_record("2.0.0", "2024-03-01"), _record("1.0.0", "2024-01-01")]
    patches = [
        _record("5.0.0", "2024-03-01", source=Source.PATCHES),
        _record("4.0.0", "2024-02-01", source=Source.PATCHES),
    ]

    combined = aggregate_versions([manager, patches])

    assert [(r.source, r.version) for r in combined] == [
        (Source.MANAGER, "2.0.0"),
        (Source.PATCHES, "5.0.0"),
        (Source.PATCHES, "4.0.0"),
        (Source.MANAGER, "1.0.0"),
    ]
    keys = [r.sort_key for r in combined]
    assert keys == sorted(keys, reverse=True)


def test_leading_v_is_stripped_from_version() -> None:
    records = parse_changelog("## [v2.0.0](http://x) (2024-01-01)\n", Source.MANAGER)

    assert records[0].version == "2.0.0"


def test_parse_date_accepts_z_suffix() -> None:
    assert parse_date("2024-01-01T12:00:00Z") == datetime(2024, 1, 1, 12, 0, 0)
