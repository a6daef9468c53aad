"""
config.py

Configuration for the Google Trends client.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic_settings import BaseSettings, SettingsConfigDict

ProxyConfig = str | dict[str, str] | None


def local_tz_offset() -> int:
    """Local timezone offset in minutes west of UTC (the format Trends expects)."""
    offset = datetime.now().astimezone().utcoffset()
    if offset is None:
        return 0
    return -int(offset.total_seconds() // 60)


def normalize_language(language: Any) -> str:
    """Keep the first two letters of a language code, falling back to 'en'."""
    if isinstance(language, str) and len(language) >= 2:
        return language[:2].lower()
    return "en"


@dataclass
class TrendsConfig:
    """Configuration for the Trends client."""

    language: str = "en"
    tz: int | None = None  # Minutes west of UTC; None = local offset
    request_delay: float = 5.0  # Minimum seconds between requests (per 2-slot window)
    max_retries: int = 3
    use_entity_names: bool = False
    proxy: ProxyConfig = None  # "http://host:port" or {"http": ..., "https": ...}
    timeout: float = 30.0
    bootstrap_pause: float = 2.0  # Seconds between the two warm-up page loads

    def __post_init__(self) -> None:
        self.language = normalize_language(self.language)
        if self.tz is None:
            self.tz = local_tz_offset()

    @property
    def default_params(self) -> dict[str, Any]:
        return {"hl": self.language, "tz": self.tz}

    @classmethod
    def from_env(cls, **overrides: Any) -> "TrendsConfig":
        """
        Build a config from TRENDHUNTER_* environment variables.

        Unset variables keep the dataclass defaults; keyword overrides win
        over the environment.
        """
        values = EnvSettings().model_dump(exclude_none=True)
        values.update(overrides)
        return cls(**values)


class EnvSettings(BaseSettings):
    """
    Environment overrides for TrendsConfig.

    Recognized variables: TRENDHUNTER_LANGUAGE, TRENDHUNTER_TZ,
    TRENDHUNTER_REQUEST_DELAY, TRENDHUNTER_MAX_RETRIES,
    TRENDHUNTER_USE_ENTITY_NAMES, TRENDHUNTER_PROXY, TRENDHUNTER_TIMEOUT,
    TRENDHUNTER_BOOTSTRAP_PAUSE.
    """

    model_config = SettingsConfigDict(
        env_prefix="TRENDHUNTER_",
        env_ignore_empty=True,
        extra="ignore",
    )

    language: str | None = None
    tz: int | None = None
    request_delay: float | None = None
    max_retries: int | None = None
    use_entity_names: bool | None = None
    proxy: str | None = None
    timeout: float | None = None
    bootstrap_pause: float | None = None
