"""Canvas payloads for the inbox widget.

Every function returns a complete ``{"canvas": {"content": ...}}`` payload; no
function here performs I/O.
"""
from __future__ import annotations

from typing import Any, Callable, Mapping
from zoneinfo import ZoneInfo

from deskcanvas.canvas.components import (
    Component,
    button,
    canvas,
    divider,
    dropdown,
    input_field,
    option,
    spacer,
    text,
    textarea,
)
from deskcanvas.orchestrator.types import FormOptions, RecentTicket

SUBJECT_PREVIEW_LENGTH = 40

EMAIL_REQUIRED = "Email is required"
EMAIL_INVALID = "Please enter a valid email address"
SUBJECT_REQUIRED = "Subject is required"


def _display_subject(subject: str) -> str:
    if len(subject) > SUBJECT_PREVIEW_LENGTH:
        return subject[:SUBJECT_PREVIEW_LENGTH] + "..."
    return subject


def recent_ticket_components(
    tickets: list[RecentTicket],
    *,
    ticket_url: Callable[[int], str],
    tz: ZoneInfo,
) -> list[Component]:
    if not tickets:
        return [text("No recent tickets", id="no_tickets", style="muted")]
    rows: list[Component] = []
    for ticket in tickets:
        rows.append(
            text(
                f"[#{ticket.id} - {_display_subject(ticket.subject)}]({ticket_url(ticket.id)})",
                id=f"ticket_{ticket.id}",
                style="muted",
            )
        )
        if ticket.created_at is not None:
            stamp = ticket.created_at.astimezone(tz).strftime("%d/%m/%Y, %I:%M %p")
            rows.append(text(stamp, id=f"ticket_date_{ticket.id}", style="muted", size="small"))
        rows.append(spacer("xs"))
    return rows


def home_view(
    tickets: list[RecentTicket],
    *,
    ticket_url: Callable[[int], str],
    tz: ZoneInfo,
) -> dict[str, Any]:
    components = [
        spacer("m"),
        button("create_ticket", "Create a Freshdesk Ticket"),
        divider(),
        text("Recent Tickets", id="recent_tickets_header", style="header", align="left"),
        spacer("xs"),
    ]
    components.extend(recent_ticket_components(tickets, ticket_url=ticket_url, tz=tz))
    return canvas(components)


def _mailbox_dropdown(options: FormOptions, selected: str | None) -> Component:
    default = options.default_mailbox
    return dropdown(
        "product_id",
        "Configure Email",
        value=selected or (f"product_{default.product_id}" if default else None),
        options=[
            option(f"product_{mailbox.product_id}", f"{mailbox.name} ({mailbox.support_email})")
            for mailbox in options.mailboxes
        ],
    )


def ticket_form_view(
    options: FormOptions,
    *,
    email: str = "",
    subject: str = "",
    description: str = "",
    submitted: Mapping[str, Any] | None = None,
    errors: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """The create-ticket form.

    ``submitted`` carries the raw dropdown values of a rejected submission so the
    agent's choices survive the re-render; ``errors`` maps field ids to messages.
    """
    submitted = submitted or {}
    errors = dict(errors or {})

    if errors:
        header = text(_summary(errors), style="error")
    else:
        header = text("Create a new Freshdesk ticket", style="header")

    components: list[Component] = [
        header,
        input_field(
            "email",
            "Email",
            value=email,
            placeholder="Enter email address",
            error=errors.get("email"),
        ),
        input_field("subject", "Subject", value=subject, error=errors.get("subject")),
        textarea("description", "Description", value=description),
    ]

    values: dict[str, str] = {}
    if options.mailboxes:
        mailbox = _mailbox_dropdown(options, _str_or_none(submitted.get("product_id")))
        components.append(mailbox)
        if mailbox.get("value"):
            values["product_id"] = mailbox["value"]
    if options.statuses:
        default_status = options.default_status
        selected = _str_or_none(submitted.get("status")) or (f"status_{default_status.id}" if default_status else None)
        components.append(
            dropdown(
                "status",
                "Status",
                value=selected,
                options=[option(f"status_{choice.id}", choice.label) for choice in options.statuses],
            )
        )
        if selected:
            values["status"] = selected
    if options.priorities:
        default_priority = options.default_priority
        selected = _str_or_none(submitted.get("priority")) or (
            f"priority_{default_priority.value}" if default_priority else None
        )
        components.append(
            dropdown(
                "priority",
                "Priority",
                value=selected,
                options=[option(f"priority_{choice.value}", choice.label) for choice in options.priorities],
            )
        )
        if selected:
            values["priority"] = selected

    components.extend(
        [
            button("submit_ticket_button", "Create Ticket"),
            button("cancel", "Cancel", style="secondary"),
        ]
    )
    return canvas(components, values=values, validation_errors=errors)


def _summary(errors: Mapping[str, str]) -> str:
    if "email" in errors and "subject" in errors:
        return "Email and Subject are required" if errors["email"] == EMAIL_REQUIRED else "Please fix the highlighted fields"
    return next(iter(errors.values()))


def _str_or_none(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def metadata_error_view() -> dict[str, Any]:
    return canvas(
        [
            text("Error", style="header"),
            text("Failed to load Freshdesk data. Please try again in a moment.", style="error"),
            button("retry_button", "Retry"),
        ]
    )


def unexpected_error_view(message: str) -> dict[str, Any]:
    return canvas(
        [
            text(f"An error occurred: {message}", style="error"),
            button("try_again", "Try Again", action="reload"),
            divider(),
            text("Recent Tickets", id="recent_tickets_header", style="header"),
            text("No recent tickets", id="no_tickets", style="muted"),
        ]
    )


def initialize_error_view() -> dict[str, Any]:
    return canvas(
        [
            text(
                "Error loading Freshdesk integration. Please try again.",
                id="error",
                style="header",
                align="center",
            )
        ]
    )
