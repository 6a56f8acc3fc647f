"""Deterministic rendering from digest payloads to email HTML."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from models import DigestPayload, RenderedMessage
from services.schemas import DIGEST_SCHEMA
from services.validator import (
    ContentValidationError,
    validate_https_links,
    validate_json_payload,
    validate_rendered_html,
)


def build_subject(payload: DigestPayload) -> str:
    if payload.progress is None:
        return f"{payload.child_name}'s Update | KinPath"
    return f"{payload.child_name}'s Week {payload.progress.gestational_week} Update | KinPath"


class DigestRenderer:
    """Render digest payloads via Jinja template."""

    def __init__(self, template_path: Path) -> None:
        self._template_path = template_path
        self._environment = Environment(
            loader=FileSystemLoader(str(template_path.parent)),
            autoescape=select_autoescape(enabled_extensions=("html", "xml")),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(self, payload: DigestPayload) -> RenderedMessage:
        """Render a validated payload into subject and HTML body."""
        if payload.progress is None:
            raise ContentValidationError(
                f"Digest payload for child {payload.child_id} has no progress facts"
            )
        context = payload.to_template_context()
        self._validate_context(context)

        template = self._environment.get_template(self._template_path.name)
        html = template.render(**context)

        html_errors = validate_rendered_html(html, settings_url=payload.settings_url)
        if html_errors:
            raise ContentValidationError("; ".join(html_errors))
        return RenderedMessage(subject=build_subject(payload), html=html)

    def _validate_context(self, context: dict[str, Any]) -> None:
        validate_json_payload(context, DIGEST_SCHEMA)
        link_errors = validate_https_links(context)
        if link_errors:
            raise ContentValidationError("; ".join(link_errors))
