"""Message template loading and rendering."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from ..constants import UNKNOWN_COURSE, UNKNOWN_SEMESTER, UNKNOWN_SESSION
from ..enums import NotificationType
from .urls import build_link

logger = logging.getLogger(__name__)

_templates: dict | None = None

# Fallbacks for payload values that only affect wording
DEFAULT_CONTEXT = {
    "course_name": UNKNOWN_COURSE,
    "semester_name": UNKNOWN_SEMESTER,
    "session_name": UNKNOWN_SESSION,
    "document_title": "A document",
    "exam_date": "the scheduled date",
    "end_date": "the end date",
}


@dataclass(frozen=True)
class RenderedMessage:
    title: str
    message: str
    type: NotificationType
    url: Optional[str] = None


def load_templates() -> dict:
    """
    Load message templates from YAML file.

    Caches templates after first load.
    """
    global _templates
    if _templates is not None:
        return _templates

    yaml_path = Path(__file__).parent / "messages.yaml"
    with open(yaml_path, encoding="utf-8") as f:
        _templates = yaml.safe_load(f)

    return _templates


def render_message(template: str, context: dict) -> str:
    """
    Render a message template with context variables.

    Raises:
        KeyError: If a required variable is missing from context
    """
    return template.format(**context)


def get_message(event_name: str, field: str, context: dict) -> str:
    """
    Get and render one field of an event's template.

    Args:
        event_name: e.g., "document.created"
        field: "title", "message" or "link"
        context: Variables to substitute
    """
    templates = load_templates()
    template = templates[event_name][field]
    return render_message(template, context)


def render_notification(event_name: str, payload: dict) -> RenderedMessage:
    """
    Render title, message, type and deep link for an event.

    Raises:
        KeyError: If the event has no template, or the title/message needs a
            payload value that has no fallback
    """
    template = load_templates()[event_name]
    context = {**DEFAULT_CONTEXT, **{k: v for k, v in payload.items() if v is not None}}

    url = None
    if template.get("link"):
        try:
            url = build_link(render_message(template["link"], context))
        except KeyError as e:
            logger.debug(f"No link for {event_name}: missing {e}")

    return RenderedMessage(
        title=render_message(template["title"], context),
        message=render_message(template["message"], context),
        type=NotificationType(template["type"]),
        url=url,
    )
