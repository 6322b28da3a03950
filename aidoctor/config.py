"""
Configuration

Settings are read from the environment (after loading a project-level
.env file) into plain dataclasses. Core functions take a ContextPolicy or
CompletionConfig argument instead of reading ``settings`` themselves.
"""
import os
from dataclasses import dataclass, field
from datetime import timedelta, timezone, tzinfo
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent

load_dotenv(PROJECT_ROOT / ".env")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw not in (None, "") else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw not in (None, "") else default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


DEFAULT_CHAT_MODEL = "gemini-2.5-flash"


@dataclass
class CompletionConfig:
    """Configuration for the completion service client."""
    api_key: Optional[str] = field(
        default_factory=lambda: os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
    )
    model: str = DEFAULT_CHAT_MODEL
    temperature: float = 0.7
    max_output_tokens: int = 800
    top_p: float = 0.8
    request_timeout_seconds: int = 30


@dataclass
class ContextPolicy:
    """
    Domain policy for assembling the patient context.

    The defaults mirror what the emergency department shows for a freshly
    registered patient: status "DEĞERLENDİRME" (under evaluation) and
    priority "orta" (medium).
    """
    default_status: str = "DEĞERLENDİRME"
    default_priority: str = "orta"
    vitals_cap: int = 5
    labs_cap: int = 5
    imaging_cap: int = 5
    history_window: int = 50
    # Türkiye has stayed on UTC+3 all year since 2016
    display_utc_offset_hours: float = 3.0

    @property
    def display_timezone(self) -> tzinfo:
        return timezone(timedelta(hours=self.display_utc_offset_hours))


@dataclass
class Settings:
    """Application-wide settings loaded from the environment."""
    log_level: str = field(default_factory=lambda: os.getenv("AIDOCTOR_LOG_LEVEL", "INFO"))
    log_file: Optional[str] = field(default_factory=lambda: os.getenv("AIDOCTOR_LOG_FILE") or None)
    gemini_api_key: Optional[str] = field(
        default_factory=lambda: os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
    )
    chat_model: str = field(default_factory=lambda: os.getenv("AIDOCTOR_CHAT_MODEL", DEFAULT_CHAT_MODEL))
    chat_temperature: float = field(default_factory=lambda: _env_float("AIDOCTOR_CHAT_TEMPERATURE", 0.7))
    chat_max_tokens: int = field(default_factory=lambda: _env_int("AIDOCTOR_CHAT_MAX_TOKENS", 800))
    analysis_max_tokens: int = field(default_factory=lambda: _env_int("AIDOCTOR_ANALYSIS_MAX_TOKENS", 2048))
    request_timeout_seconds: int = field(default_factory=lambda: _env_int("AIDOCTOR_REQUEST_TIMEOUT", 30))
    history_window: int = field(default_factory=lambda: _env_int("AIDOCTOR_HISTORY_WINDOW", 50))
    serialize_turns: bool = field(default_factory=lambda: _env_bool("AIDOCTOR_SERIALIZE_TURNS", True))
    display_utc_offset_hours: float = field(
        default_factory=lambda: _env_float("AIDOCTOR_DISPLAY_UTC_OFFSET", 3.0)
    )

    def completion_config(self, max_output_tokens: Optional[int] = None) -> CompletionConfig:
        return CompletionConfig(
            api_key=self.gemini_api_key,
            model=self.chat_model,
            temperature=self.chat_temperature,
            max_output_tokens=max_output_tokens or self.chat_max_tokens,
            request_timeout_seconds=self.request_timeout_seconds,
        )

    def context_policy(self) -> ContextPolicy:
        return ContextPolicy(
            history_window=self.history_window,
            display_utc_offset_hours=self.display_utc_offset_hours,
        )


settings = Settings()
