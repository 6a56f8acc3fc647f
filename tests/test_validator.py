"""Tests for content validator helpers."""

from __future__ import annotations

import pytest

from services.schemas import DIGEST_SCHEMA
from services.validator import (
    ContentValidationError,
    validate_https_links,
    validate_json_payload,
    validate_rendered_html,
)

SETTINGS_URL = "https://app.kinpath.test/settings/notifications"


def _context() -> dict[str, object]:
    return {
        "display_name": "Maya",
        "child_name": "Bean",
        "progress": {
            "gestational_week": 20,
            "weeks_remaining": 20,
            "trimester": 2,
            "encouragement": None,
            "milestone": None,
            "size": None,
        },
        "body_change": None,
        "planning_tips": [],
        "new_resources": [],
        "dashboard_url": "https://app.kinpath.test",
        "settings_url": SETTINGS_URL,
    }


def test_digest_schema_accepts_minimal_context() -> None:
    validate_json_payload(_context(), DIGEST_SCHEMA)


def test_digest_schema_requires_progress() -> None:
    context = _context()
    context["progress"] = None

    with pytest.raises(ContentValidationError, match="progress"):
        validate_json_payload(context, DIGEST_SCHEMA)


def test_validate_json_payload_with_minimal_schema() -> None:
    schema = {
        "type": "object",
        "required": ["a"],
        "properties": {"a": {"type": "string"}},
    }
    validate_json_payload({"a": "ok"}, schema)

    with pytest.raises(ContentValidationError):
        validate_json_payload({"a": 1}, schema)


def test_validate_https_links_flags_nested_urls() -> None:
    errors = validate_https_links(
        {
            "dashboard_url": "https://ok.example.com",
            "new_resources": [{"url": "http://bad.example.com"}],
        }
    )

    assert errors == ["Invalid URL at new_resources[0].url: http://bad.example.com"]


def test_validate_rendered_html_requires_preferences_link() -> None:
    html = '<html><body><a href="https://app.kinpath.test">Dashboard</a></body></html>'

    errors = validate_rendered_html(html, settings_url=SETTINGS_URL)

    assert "Missing email preferences link" in errors


def test_validate_rendered_html_flags_bad_anchors() -> None:
    html = (
        "<html><body>"
        f'<a href="{SETTINGS_URL}">Preferences</a>'
        '<a href="http://insecure.example.com">Bad</a>'
        "<a>Empty</a>"
        "</body></html>"
    )

    errors = validate_rendered_html(html, settings_url=SETTINGS_URL)

    assert "Invalid anchor href: http://insecure.example.com" in errors
    assert "Anchor tag missing href" in errors
    assert "Missing email preferences link" not in errors


def test_validate_rendered_html_enforces_size_budget() -> None:
    html = f'<a href="{SETTINGS_URL}">Preferences</a>' + ("x" * 200_000)

    assert "Rendered HTML exceeds size budget" in validate_rendered_html(
        html, settings_url=SETTINGS_URL
    )
