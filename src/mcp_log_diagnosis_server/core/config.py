"""Runtime settings loaded from environment variables."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from .errors import InvalidConfigError

ENV_PREFIX = "LOG_DIAGNOSIS_"

_TRUE = {"1", "true", "t", "yes", "y", "on"}
_FALSE = {"0", "false", "f", "no", "n", "off"}


class Provider(str, Enum):
    GEMINI = "gemini"
    OPENAI = "openai"
    STAND_IN = "stand_in"


_DEFAULT_MODELS = {
    Provider.GEMINI: "gemini-2.0-flash",
    Provider.OPENAI: "gpt-4o-mini",
    Provider.STAND_IN: "stand-in",
}

_DEFAULT_BASE_URLS = {
    Provider.GEMINI: "",
    Provider.OPENAI: "https://api.openai.com/v1",
    Provider.STAND_IN: "",
}

# Provider-native key variables, consulted after LOG_DIAGNOSIS_AI_API_KEY.
_PROVIDER_KEY_ENVS = {
    Provider.GEMINI: ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    Provider.OPENAI: ("OPENAI_API_KEY",),
    Provider.STAND_IN: (),
}


@dataclass(frozen=True, slots=True)
class Settings:
    provider: Provider = Provider.GEMINI
    api_key: str = ""
    base_url: str = ""
    model: str = "gemini-2.0-flash"
    ai_timeout_s: float = 30.0
    max_tokens: int = 1024
    max_retries: int = 2
    mock_mode: bool = False

    max_log_size: int = 50_000
    enable_rules: bool = True
    rule_confidence_threshold: float = 0.8

    base_dir: str = ""
    log_level: str = "INFO"

    @property
    def uses_stand_in(self) -> bool:
        return self.mock_mode or self.provider is Provider.STAND_IN

    def validate(self) -> Settings:
        """Return self, or raise InvalidConfigError for out-of-range values."""
        if not self.uses_stand_in and not self.api_key:
            raise InvalidConfigError(
                f"{ENV_PREFIX}AI_API_KEY is required when not in mock mode "
                f"(provider={self.provider.value})"
            )
        if self.ai_timeout_s < 1:
            raise InvalidConfigError(f"{ENV_PREFIX}AI_TIMEOUT must be at least 1 second")
        if self.max_tokens < 100:
            raise InvalidConfigError(f"{ENV_PREFIX}AI_MAX_TOKENS must be at least 100")
        if self.max_retries < 0:
            raise InvalidConfigError(f"{ENV_PREFIX}AI_MAX_RETRIES must be >= 0")
        if self.max_log_size < 1000:
            raise InvalidConfigError(f"{ENV_PREFIX}MAX_LOG_SIZE must be at least 1000 bytes")
        if not 0.0 <= self.rule_confidence_threshold <= 1.0:
            raise InvalidConfigError(
                f"{ENV_PREFIX}RULE_CONFIDENCE_THRESHOLD must be between 0 and 1"
            )
        return self


def _get(env: Mapping[str, str], name: str) -> str | None:
    value = env.get(ENV_PREFIX + name)
    if value is None or value.strip() == "":
        return None
    return value.strip()


def _get_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = _get(env, name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise InvalidConfigError(f"{ENV_PREFIX}{name} must be an integer") from exc


def _get_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = _get(env, name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise InvalidConfigError(f"{ENV_PREFIX}{name} must be a number") from exc


def _get_seconds(env: Mapping[str, str], name: str, default: float) -> float:
    """Accept plain seconds ("15") or a unit suffix ("15s", "2m", "500ms")."""
    raw = _get(env, name)
    if raw is None:
        return default
    text = raw.lower()
    for suffix, factor in (("ms", 0.001), ("s", 1.0), ("m", 60.0)):
        if text.endswith(suffix):
            text, scale = text[: -len(suffix)], factor
            break
    else:
        scale = 1.0
    try:
        return float(text) * scale
    except ValueError as exc:
        raise InvalidConfigError(f"{ENV_PREFIX}{name} must be a duration in seconds") from exc


def _get_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = _get(env, name)
    if raw is None:
        return default
    lowered = raw.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise InvalidConfigError(f"{ENV_PREFIX}{name} must be a boolean")


def _get_provider(env: Mapping[str, str]) -> Provider:
    raw = _get(env, "AI_PROVIDER")
    if raw is None:
        return Provider.GEMINI
    try:
        return Provider(raw.lower())
    except ValueError as exc:
        allowed = ", ".join(p.value for p in Provider)
        raise InvalidConfigError(f"{ENV_PREFIX}AI_PROVIDER must be one of: {allowed}") from exc


def _get_api_key(env: Mapping[str, str], provider: Provider) -> str:
    key = _get(env, "AI_API_KEY")
    if key:
        return key
    for name in _PROVIDER_KEY_ENVS[provider]:
        value = env.get(name)
        if value:
            return value
    return ""


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Build validated Settings from the environment."""
    if env is None:
        env = os.environ

    provider = _get_provider(env)
    settings = Settings(
        provider=provider,
        api_key=_get_api_key(env, provider),
        base_url=_get(env, "AI_BASE_URL") or _DEFAULT_BASE_URLS[provider],
        model=_get(env, "AI_MODEL") or _DEFAULT_MODELS[provider],
        ai_timeout_s=_get_seconds(env, "AI_TIMEOUT", 30.0),
        max_tokens=_get_int(env, "AI_MAX_TOKENS", 1024),
        max_retries=_get_int(env, "AI_MAX_RETRIES", 2),
        mock_mode=_get_bool(env, "AI_MOCK_MODE", False),
        max_log_size=_get_int(env, "MAX_LOG_SIZE", 50_000),
        enable_rules=_get_bool(env, "ENABLE_RULES", True),
        rule_confidence_threshold=_get_float(env, "RULE_CONFIDENCE_THRESHOLD", 0.8),
        base_dir=_get(env, "BASE_DIR") or os.getcwd(),
        log_level=(_get(env, "LOG_LEVEL") or "INFO").upper(),
    )
    return settings.validate()
