"""JSON schema for the digest template context."""

from __future__ import annotations

DIGEST_SCHEMA: dict[str, object] = {
    "type": "object",
    "required": [
        "display_name",
        "child_name",
        "progress",
        "body_change",
        "planning_tips",
        "new_resources",
        "dashboard_url",
        "settings_url",
    ],
    "additionalProperties": False,
    "properties": {
        "display_name": {"type": "string", "minLength": 1},
        "child_name": {"type": "string", "minLength": 1},
        "progress": {
            "type": "object",
            "required": [
                "gestational_week",
                "weeks_remaining",
                "trimester",
                "encouragement",
                "milestone",
                "size",
            ],
            "additionalProperties": False,
            "properties": {
                "gestational_week": {"type": "integer", "minimum": 1, "maximum": 40},
                "weeks_remaining": {"type": "integer", "minimum": 0},
                "trimester": {"type": "integer", "enum": [1, 2, 3]},
                "encouragement": {"type": ["string", "null"]},
                "milestone": {"type": ["string", "null"]},
                "size": {
                    "type": ["object", "null"],
                    "required": ["object", "emoji"],
                    "additionalProperties": False,
                    "properties": {
                        "object": {"type": "string"},
                        "emoji": {"type": "string"},
                    },
                },
            },
        },
        "body_change": {
            "type": ["object", "null"],
            "required": ["body", "tip"],
            "additionalProperties": False,
            "properties": {
                "body": {"type": ["string", "null"]},
                "tip": {"type": ["string", "null"]},
            },
        },
        "planning_tips": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["week", "category", "tip"],
                "additionalProperties": False,
                "properties": {
                    "week": {"type": "integer"},
                    "category": {"type": "string"},
                    "tip": {"type": "string"},
                },
            },
        },
        "new_resources": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["title", "slug", "summary", "url"],
                "additionalProperties": False,
                "properties": {
                    "title": {"type": "string"},
                    "slug": {"type": "string"},
                    "summary": {"type": "string"},
                    "url": {"type": "string"},
                },
            },
        },
        "dashboard_url": {"type": "string"},
        "settings_url": {"type": "string"},
    },
}
