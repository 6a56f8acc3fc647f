"""Validation helpers for pre-render payload and pre-send HTML checks."""

from __future__ import annotations

from typing import Any
from urllib.parse import urlparse

from bs4 import BeautifulSoup
from jsonschema import ValidationError, validate

HTML_SIZE_BUDGET = 100_000


class ContentValidationError(ValueError):
    """Raised when digest content fails schema or safety checks."""


def validate_json_payload(payload: dict[str, Any], schema: dict[str, object]) -> None:
    """Validate payload against schema and surface clean error messages."""
    try:
        validate(instance=payload, schema=schema)
    except ValidationError as exc:
        path = ".".join(str(part) for part in exc.path)
        context = f" at {path}" if path else ""
        raise ContentValidationError(f"Schema validation failed{context}: {exc.message}") from exc


def validate_https_links(payload: dict[str, Any]) -> list[str]:
    """Validate that all URL fields in payload use https absolute links."""
    errors: list[str] = []

    def _walk(node: Any, path: str) -> None:
        if isinstance(node, dict):
            for key, value in node.items():
                next_path = f"{path}.{key}" if path else key
                if key.endswith("url") and isinstance(value, str):
                    if not _is_https_url(value):
                        errors.append(f"Invalid URL at {next_path}: {value}")
                _walk(value, next_path)
        elif isinstance(node, list):
            for index, item in enumerate(node):
                _walk(item, f"{path}[{index}]")

    _walk(payload, "")
    return errors


def validate_rendered_html(html: str, *, settings_url: str) -> list[str]:
    """Run pre-send HTML checks for the preferences link and link quality."""
    errors: list[str] = []
    if len(html) > HTML_SIZE_BUDGET:
        errors.append("Rendered HTML exceeds size budget")

    soup = BeautifulSoup(html, "html.parser")
    hrefs: list[str] = []
    for anchor in soup.find_all("a"):
        href = str(anchor.get("href", "")).strip()
        if not href:
            errors.append("Anchor tag missing href")
            continue
        hrefs.append(href)
        if not _is_https_url(href):
            errors.append(f"Invalid anchor href: {href}")

    if settings_url not in hrefs:
        errors.append("Missing email preferences link")

    return errors


def _is_https_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme == "https" and bool(parsed.netloc)
