from __future__ import annotations

import re
from typing import Any, Mapping

from deskcanvas.canvas.views import EMAIL_INVALID, EMAIL_REQUIRED, SUBJECT_REQUIRED
from deskcanvas.core.errors import ValidationError
from deskcanvas.core.utils import parse_prefixed_int
from deskcanvas.orchestrator.types import ConversationContext, SubmissionRequest

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _text(values: Mapping[str, Any], key: str) -> str:
    value = values.get(key)
    return value.strip() if isinstance(value, str) else ""


def field_errors(input_values: Mapping[str, Any]) -> dict[str, str]:
    errors: dict[str, str] = {}
    email = _text(input_values, "email")
    if not email:
        errors["email"] = EMAIL_REQUIRED
    elif not EMAIL_PATTERN.match(email):
        errors["email"] = EMAIL_INVALID
    if not _text(input_values, "subject"):
        errors["subject"] = SUBJECT_REQUIRED
    return errors


def parse_submission(
    input_values: Mapping[str, Any],
    context: ConversationContext,
    *,
    default_description: str,
    submission_id: str = "",
) -> SubmissionRequest:
    """Validates the canvas form and returns the request to process.

    Raises ``ValidationError`` with one message per offending field.
    """
    errors = field_errors(input_values)
    if errors:
        raise ValidationError(errors)

    description = input_values.get("description")
    if not isinstance(description, str) or not description.strip():
        description = default_description

    return SubmissionRequest(
        email=_text(input_values, "email"),
        subject=_text(input_values, "subject"),
        description=description,
        mailbox_id=parse_prefixed_int(input_values.get("product_id"), "product_"),
        status_id=parse_prefixed_int(input_values.get("status"), "status_"),
        priority_id=parse_prefixed_int(input_values.get("priority"), "priority_"),
        conversation_id=context.conversation_id,
        submission_id=submission_id,
    )
