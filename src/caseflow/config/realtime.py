"""Realtime change-notifier configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

DEFAULT_REALTIME_TOPIC = "caseflow:field-changes"
REALTIME_TIMEOUT_SECONDS = 5.0


@dataclass(frozen=True, slots=True)
class RealtimeConfig:
    """Broadcast endpoint used to fan field changes out to other sessions."""

    base_url: str
    api_key: str
    topic: str
    resilience: ResilienceConfig


def get_realtime_config(*, resilience: ResilienceConfig | None = None) -> RealtimeConfig:
    values = require_env_vars(("CASEFLOW_REALTIME_URL", "CASEFLOW_REALTIME_KEY"))
    base_url = values["CASEFLOW_REALTIME_URL"].rstrip("/")
    api_key = values["CASEFLOW_REALTIME_KEY"]
    return RealtimeConfig(
        base_url=base_url,
        api_key=api_key,
        topic=optional_env_var("CASEFLOW_REALTIME_TOPIC") or DEFAULT_REALTIME_TOPIC,
        resilience=resilience
        or ResilienceConfig(
            name="realtime",
            base_url=base_url,
            timeout_seconds=REALTIME_TIMEOUT_SECONDS,
            retry=RetryPolicy(total=3, status_forcelist=frozenset({429, 502, 503, 504})),
            ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
            default_headers={"apikey": api_key, "Authorization": f"Bearer {api_key}"},
        ),
    )
