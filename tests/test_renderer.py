"""Tests for deterministic digest rendering."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest
from bs4 import BeautifulSoup

from models import (
    BodyChangeFact,
    DigestPayload,
    NewResourceSummary,
    PlanningTip,
    ProgressFact,
    SizeComparison,
)
from services.renderer import DigestRenderer
from services.validator import ContentValidationError

APP_URL = "https://app.kinpath.test"
SIZE = SizeComparison(week=20, object="banana", emoji="\U0001F34C", length_cm=25.6, weight_description="about 300g")


def _progress(size: SizeComparison | None = SIZE) -> ProgressFact:
    return ProgressFact(
        gestational_week=20,
        weeks_remaining=20,
        days_remaining=143,
        trimester=2,
        size=size,
        encouragement="Halfway milestone! Baby can hear your voice now.",
        milestone="Halfway there!",
    )


def _resource(slug: str) -> NewResourceSummary:
    return NewResourceSummary(
        title=f"Title {slug}",
        slug=slug,
        summary=f"Summary {slug}",
        url=f"{APP_URL}/resources/{slug}",
    )


def _payload(**overrides: object) -> DigestPayload:
    payload = DigestPayload(
        subscriber_id="user-1",
        child_id="child-1",
        display_name="Maya",
        child_name="Bean",
        progress=_progress(),
        body_change=None,
        planning_tips=(),
        new_resources=(),
        dashboard_url=APP_URL,
        settings_url=f"{APP_URL}/settings/notifications",
    )
    return replace(payload, **overrides)  # type: ignore[arg-type]


def _sections(html: str) -> set[str]:
    soup = BeautifulSoup(html, "html.parser")
    return {str(node["data-section"]) for node in soup.find_all(attrs={"data-section": True})}


def test_minimal_payload_renders_progress_only(template_path: Path) -> None:
    message = DigestRenderer(template_path).render(_payload())

    assert message.subject == "Bean's Week 20 Update | KinPath"
    assert _sections(message.html) == {"progress"}
    assert "Hi Maya," in message.html
    assert "about the size of a banana" in message.html
    assert f"{APP_URL}/settings/notifications" in message.html


def test_full_payload_renders_every_section(template_path: Path) -> None:
    payload = _payload(
        body_change=BodyChangeFact(week=20, body="Your uterus has reached your navel.", tip=None),
        planning_tips=(PlanningTip(20, "preparation", "Start your baby registry"),),
        new_resources=(_resource("a"),),
    )

    html = DigestRenderer(template_path).render(payload).html

    assert _sections(html) == {"progress", "body-change", "planning", "resources"}
    assert "Your uterus has reached your navel." in html
    assert "Tip:" not in html
    assert "Preparation:" in html


def test_progress_section_requires_size_fact(template_path: Path) -> None:
    html = DigestRenderer(template_path).render(_payload(progress=_progress(size=None))).html

    assert "progress" not in _sections(html)
    assert "Week 20" not in html


def test_body_change_section_requires_body_or_tip(template_path: Path) -> None:
    payload = _payload(body_change=BodyChangeFact(week=20, body=None, tip=None))

    html = DigestRenderer(template_path).render(payload).html

    assert "body-change" not in _sections(html)


def test_empty_resources_omit_section(template_path: Path) -> None:
    html = DigestRenderer(template_path).render(_payload(new_resources=())).html

    assert "New Resources for You" not in html


def test_three_resources_render_in_calling_order(template_path: Path) -> None:
    payload = _payload(new_resources=(_resource("newest"), _resource("middle"), _resource("oldest")))

    html = DigestRenderer(template_path).render(payload).html

    soup = BeautifulSoup(html, "html.parser")
    entries = soup.find_all("div", class_="resource")
    assert len(entries) == 3
    assert [entry.find("a")["href"] for entry in entries] == [
        f"{APP_URL}/resources/newest",
        f"{APP_URL}/resources/middle",
        f"{APP_URL}/resources/oldest",
    ]


def test_renderer_escapes_subscriber_text(template_path: Path) -> None:
    html = DigestRenderer(template_path).render(_payload(display_name="<b>Maya</b>")).html

    assert "<b>Maya</b>" not in html
    assert "&lt;b&gt;Maya&lt;/b&gt;" in html


def test_renderer_rejects_payload_without_progress(template_path: Path) -> None:
    with pytest.raises(ContentValidationError, match="no progress"):
        DigestRenderer(template_path).render(_payload(progress=None))


def test_renderer_rejects_invalid_links(template_path: Path) -> None:
    payload = _payload(new_resources=(replace(_resource("a"), url="http://insecure.example.com"),))

    with pytest.raises(ContentValidationError, match="Invalid URL"):
        DigestRenderer(template_path).render(payload)


def test_document_title_does_not_name_a_cadence(template_path: Path) -> None:
    message = DigestRenderer(template_path).render(_payload())

    title = BeautifulSoup(message.html, "html.parser").title
    assert title is not None
    assert title.get_text() == "Bean's pregnancy update"
