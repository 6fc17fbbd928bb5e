from __future__ import annotations

import logging
from pathlib import Path


class TemplateError(RuntimeError):
    pass


def read_template(path: Path) -> str:
    logging.info(f"Reading template from {path}")
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise TemplateError(f"Template not found: {path}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise TemplateError(f"Cannot read template {path}: {e}") from e


def inject_content(template: str, placeholder: str, content: str) -> str:
    """Replace the first occurrence of ``placeholder`` with ``content``."""
    if placeholder not in template:
        raise TemplateError(f"Template does not contain placeholder {placeholder!r}")
    count = template.count(placeholder)
    if count > 1:
        logging.warning(f"Placeholder {placeholder!r} appears {count} times, replacing the first one only")
    return template.replace(placeholder, content, 1)


def write_output(path: Path, html: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(html, encoding="utf-8")
    except OSError as e:
        raise TemplateError(f"Cannot write output {path}: {e}") from e
    logging.info(f"Wrote {len(html)} chars to {path}")
