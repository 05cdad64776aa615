from __future__ import annotations

from typing import Any


class DeskCanvasError(RuntimeError):
    """Base class for errors raised by deskcanvas components."""


class ValidationError(DeskCanvasError):
    """User-correctable input problem, reported inline on the offending fields."""

    def __init__(self, field_errors: dict[str, str]) -> None:
        self.field_errors = dict(field_errors)
        super().__init__("; ".join(f"{name}: {message}" for name, message in self.field_errors.items()))


class UpstreamUnavailable(DeskCanvasError):
    """Ticketing or conversation API unreachable or erroring after retries."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        detail: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail

    @property
    def user_message(self) -> str:
        if isinstance(self.detail, dict):
            for key in ("message", "description", "error"):
                value = self.detail.get(key)
                if isinstance(value, str) and value.strip():
                    return value.strip()
        return str(self)


class TranscriptUnavailable(DeskCanvasError):
    """The conversation transcript could not be fetched or rendered."""


class PreconditionViolation(DeskCanvasError):
    """A required field reached the ticket creator empty."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Missing required ticket fields: {', '.join(self.missing)}")
