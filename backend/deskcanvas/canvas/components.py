from __future__ import annotations

from typing import Any

Component = dict[str, Any]


def text(
    value: str,
    *,
    id: str | None = None,
    style: str | None = None,
    align: str | None = None,
    size: str | None = None,
) -> Component:
    component: Component = {"type": "text", "text": value}
    if id:
        component["id"] = id
    if style:
        component["style"] = style
    if align:
        component["align"] = align
    if size:
        component["size"] = size
    return component


def button(
    id: str,
    label: str,
    *,
    style: str = "primary",
    action: str = "submit",
    disabled: bool = False,
) -> Component:
    return {
        "type": "button",
        "id": id,
        "label": label,
        "style": style,
        "disabled": disabled,
        "action": {"type": action},
    }


def input_field(
    id: str,
    label: str,
    *,
    value: str = "",
    placeholder: str | None = None,
    error: str | None = None,
) -> Component:
    component: Component = {"type": "input", "id": id, "label": label, "value": value}
    if placeholder:
        component["placeholder"] = placeholder
    if error:
        component["error"] = error
    return component


def textarea(id: str, label: str, *, value: str = "") -> Component:
    return {"type": "textarea", "id": id, "label": label, "value": value}


def option(id: str, label: str) -> Component:
    return {"type": "option", "id": id, "text": label}


def dropdown(id: str, label: str, *, options: list[Component], value: str | None = None) -> Component:
    component: Component = {"type": "dropdown", "id": id, "label": label, "options": options}
    if value:
        component["value"] = value
    return component


def spacer(size: str = "s") -> Component:
    return {"type": "spacer", "size": size}


def divider() -> Component:
    return {"type": "divider"}


def canvas(
    components: list[Component],
    *,
    values: dict[str, str] | None = None,
    validation_errors: dict[str, str] | None = None,
) -> dict[str, Any]:
    content: dict[str, Any] = {"components": components}
    if values:
        content["values"] = values
    if validation_errors:
        content["validation_errors"] = validation_errors
    return {"canvas": {"content": content}}
