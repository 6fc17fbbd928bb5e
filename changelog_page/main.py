from __future__ import annotations

import asyncio
import logging
import sys
from typing import Optional

import httpx

from .changelog import aggregate_versions, parse_changelog, select_versions
from .config import Config
from .fetch import fetch_all
from .render import render_versions
from .template import TemplateError, inject_content, read_template, write_output


async def generate_changelog(cfg: Config, client: Optional[httpx.AsyncClient] = None) -> int:
    """Fetch, parse, select, render and write the changelog page.

    Returns the number of releases written. Nothing is written when a fetch
    fails or the template has no placeholder.
    """
    logging.info("Fetching changelogs...")
    markdowns = await fetch_all(
        [s.raw_url for s in cfg.sources],
        timeout=cfg.fetch_timeout,
        max_retries=cfg.fetch_retries,
        client=client,
    )

    logging.info("Parsing changelogs...")
    selected = []
    for source_cfg, markdown in zip(cfg.sources, markdowns):
        versions = parse_changelog(markdown, source_cfg.source, cfg.prerelease_markers)
        kept = select_versions(versions, source_cfg.max_stable)
        logging.info(
            f"{source_cfg.source.label}: parsed {len(versions)} versions, keeping {len(kept)}"
        )
        selected.append(kept)

    all_versions = aggregate_versions(selected)
    logging.info(f"Found {len(all_versions)} releases")

    html = render_versions(all_versions, cfg.repo_urls())
    page = inject_content(read_template(cfg.template_path), cfg.placeholder, html)
    write_output(cfg.output_path, page)
    return len(all_versions)


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
    )
    # Reduce httpx logging noise
    logging.getLogger('httpx').setLevel(logging.WARNING)


async def async_main() -> int:
    try:
        cfg = Config()
    except ValueError as e:
        setup_logging()
        logging.error(f"Configuration error: {e}")
        return 2

    setup_logging(cfg.log_level, cfg.log_file)
    logging.info("Starting changelog page generation...")
    try:
        cfg.validate()
        logging.info("Configuration validated successfully")
        for s in cfg.sources:
            logging.info(f"{s.source.label} changelog: {s.raw_url} (max {s.max_stable} stable releases)")
        logging.info(f"Template path: {cfg.template_path}")
    except Exception as e:
        logging.error(f"Configuration error: {e}")
        return 2

    try:
        count = await generate_changelog(cfg)
    except httpx.HTTPError as e:
        logging.error(f"Fetch failed, no output written: {e}")
        return 1
    except TemplateError as e:
        logging.error(f"Template error, no output written: {e}")
        return 1

    logging.info(f"Changelog generated successfully with {count} releases")
    return 0


def main() -> None:
    raise SystemExit(asyncio.run(async_main()))
