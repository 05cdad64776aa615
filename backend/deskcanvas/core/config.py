from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from deskcanvas.infrastructure.http_client import RetryPolicy


def _env_str(name: str, default: str = "") -> str:
    return os.getenv(name, default).strip()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    app_name: str = "deskcanvas"
    api_prefix: str = "/api"
    cors_origins: str = "*"
    log_level: str = "INFO"

    freshdesk_domain: str = ""
    freshdesk_api_key: str = ""
    freshdesk_password: str = "X"
    ticket_source: int = 2

    intercom_api_url: str = "https://api.intercom.io"
    intercom_access_token: str = ""
    intercom_admin_id: int = 0
    intercom_inbox_url: str = "https://app.intercom.com/a/inbox"

    http_retries: int = 3
    http_base_delay_seconds: float = 0.5
    http_max_delay_seconds: float = 10.0
    http_jitter_ratio: float = 0.2
    http_timeout_seconds: float = 10.0
    note_retries: int = 1

    submit_deadline_seconds: float = 9.0
    deadline_margin_seconds: float = 1.0
    tracker_stale_after_seconds: float = 0.0

    recent_tickets_limit: int = 5
    display_timezone: str = "Asia/Kolkata"
    default_description: str = "Chat Transcript Added"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            app_name=_env_str("APP_NAME", "deskcanvas"),
            api_prefix=_env_str("API_PREFIX", "/api"),
            cors_origins=_env_str("CORS_ORIGINS", "*"),
            log_level=_env_str("LOG_LEVEL", "INFO").upper(),
            freshdesk_domain=_env_str("FRESHDESK_DOMAIN").rstrip("/"),
            freshdesk_api_key=_env_str("FRESHDESK_API_KEY"),
            freshdesk_password=_env_str("FRESHDESK_PASSWORD", "X"),
            ticket_source=_env_int("FRESHDESK_TICKET_SOURCE", 2),
            intercom_api_url=_env_str("INTERCOM_API_URL", "https://api.intercom.io").rstrip("/"),
            intercom_access_token=_env_str("INTERCOM_ACCESS_TOKEN"),
            intercom_admin_id=_env_int("INTERCOM_ADMIN_ID", 0),
            intercom_inbox_url=_env_str("INTERCOM_INBOX_URL", "https://app.intercom.com/a/inbox").rstrip("/"),
            http_retries=_env_int("HTTP_RETRIES", 3),
            http_base_delay_seconds=_env_float("HTTP_BASE_DELAY_SECONDS", 0.5),
            http_max_delay_seconds=_env_float("HTTP_MAX_DELAY_SECONDS", 10.0),
            http_jitter_ratio=_env_float("HTTP_JITTER_RATIO", 0.2),
            http_timeout_seconds=_env_float("HTTP_TIMEOUT_SECONDS", 10.0),
            note_retries=_env_int("NOTE_RETRIES", 1),
            submit_deadline_seconds=_env_float("SUBMIT_DEADLINE_SECONDS", 9.0),
            deadline_margin_seconds=_env_float("DEADLINE_MARGIN_SECONDS", 1.0),
            tracker_stale_after_seconds=_env_float("TRACKER_STALE_AFTER_SECONDS", 0.0),
            recent_tickets_limit=_env_int("RECENT_TICKETS_LIMIT", 5),
            display_timezone=_env_str("DISPLAY_TIMEZONE", "Asia/Kolkata"),
            default_description=_env_str("DEFAULT_DESCRIPTION", "Chat Transcript Added"),
        )

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def freshdesk_api_base(self) -> str:
        return f"{self.freshdesk_domain}/api/v2"

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            retries=max(0, self.http_retries),
            base_delay_seconds=self.http_base_delay_seconds,
            max_delay_seconds=self.http_max_delay_seconds,
            jitter_ratio=self.http_jitter_ratio,
            timeout_seconds=self.http_timeout_seconds,
        )

    @property
    def note_retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            retries=max(0, self.note_retries),
            base_delay_seconds=self.http_base_delay_seconds,
            max_delay_seconds=self.http_max_delay_seconds,
            jitter_ratio=self.http_jitter_ratio,
            timeout_seconds=self.http_timeout_seconds,
        )

    def ticket_url(self, ticket_id: int | str) -> str:
        return f"{self.freshdesk_domain}/a/tickets/{ticket_id}"

    def conversation_url(self, conversation_id: str) -> str:
        return f"{self.intercom_inbox_url}/conversation/{conversation_id}"
