from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Tuple

from dotenv import load_dotenv


RAW_GITHUB_RE = re.compile(r"^https://raw\.githubusercontent\.com/(?P<owner>[^/]+)/(?P<repo>[^/]+)/")

DEFAULT_MANAGER_URL = "https://raw.githubusercontent.com/MorpheApp/morphe-manager/refs/heads/dev/app/CHANGELOG.md"
DEFAULT_PATCHES_URL = "https://raw.githubusercontent.com/MorpheApp/morphe-patches/refs/heads/dev/CHANGELOG.md"
DEFAULT_PRERELEASE_MARKERS: Tuple[str, ...] = ("-dev", "-alpha", "-beta")
DEFAULT_PLACEHOLDER = "{{CHANGELOG_CONTENT}}"


class Source(str, Enum):
    MANAGER = "manager"
    PATCHES = "patches"

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class CategoryStyle:
    icon: str
    css_class: str


CATEGORY_STYLES: Dict[str, CategoryStyle] = {
    "features": CategoryStyle("✨", "icon-added"),
    "bug fixes": CategoryStyle("\U0001F41B", "icon-fixed"),
    "perf": CategoryStyle("⚡", "icon-perf"),
}
DEFAULT_CATEGORY_STYLE = CategoryStyle("\U0001F4DD", "icon-changed")


def category_style(name: str) -> CategoryStyle:
    return CATEGORY_STYLES.get(name.strip().lower(), DEFAULT_CATEGORY_STYLE)


def repo_url_from_raw(raw_url: str) -> str:
    """Map a raw.githubusercontent.com file URL to its repository page."""
    m = RAW_GITHUB_RE.match(raw_url)
    if not m:
        raise ValueError(f"Invalid raw GitHub URL: {raw_url}")
    return f"https://github.com/{m.group('owner')}/{m.group('repo')}"


@dataclass(frozen=True)
class SourceConfig:
    source: Source
    raw_url: str
    max_stable: int

    @property
    def repo_url(self) -> str:
        return repo_url_from_raw(self.raw_url)


def _split_markers(value: str) -> Tuple[str, ...]:
    return tuple(m.strip() for m in value.split(",") if m.strip())


class Config:
    def __init__(self) -> None:
        logging.debug("Loading configuration...")
        load_dotenv()
        self.sources: Tuple[SourceConfig, ...] = (
            SourceConfig(
                Source.MANAGER,
                os.getenv("MANAGER_CHANGELOG_URL", DEFAULT_MANAGER_URL).strip(),
                int(os.getenv("MAX_MANAGER_RELEASES", "10")),
            ),
            SourceConfig(
                Source.PATCHES,
                os.getenv("PATCHES_CHANGELOG_URL", DEFAULT_PATCHES_URL).strip(),
                int(os.getenv("MAX_PATCHES_RELEASES", "10")),
            ),
        )
        self.prerelease_markers = _split_markers(
            os.getenv("PRERELEASE_MARKERS", ",".join(DEFAULT_PRERELEASE_MARKERS))
        )
        self.template_path = Path(os.getenv("CHANGELOG_TEMPLATE_PATH", "public/changelog.html"))
        output = os.getenv("CHANGELOG_OUTPUT_PATH", "").strip()
        self.output_path = Path(output) if output else self.template_path
        self.placeholder = os.getenv("CHANGELOG_PLACEHOLDER", DEFAULT_PLACEHOLDER)
        self.fetch_timeout = float(os.getenv("FETCH_TIMEOUT", "30"))  # seconds
        self.fetch_retries = int(os.getenv("FETCH_RETRIES", "2"))
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        self.log_file = os.getenv("LOG_FILE", "").strip() or None

        logging.debug(
            f"Loaded config: sources={[s.source.value for s in self.sources]}, "
            f"template={self.template_path}, output={self.output_path}"
        )

    def repo_urls(self) -> Dict[Source, str]:
        return {s.source: s.repo_url for s in self.sources}

    def validate(self) -> None:
        problems = []
        for s in self.sources:
            if s.max_stable < 0:
                problems.append(f"release cap for {s.source.value} must not be negative")
            if not RAW_GITHUB_RE.match(s.raw_url):
                problems.append(f"invalid raw GitHub URL for {s.source.value}: {s.raw_url!r}")
        if not self.prerelease_markers:
            problems.append("PRERELEASE_MARKERS is empty")
        if not self.placeholder:
            problems.append("CHANGELOG_PLACEHOLDER is empty")
        if self.fetch_retries < 0:
            problems.append("FETCH_RETRIES must not be negative")
        if problems:
            logging.error(f"Invalid configuration: {'; '.join(problems)}")
            raise RuntimeError("Invalid configuration: " + "; ".join(problems))
        logging.debug("Configuration validation passed")
