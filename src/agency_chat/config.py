"""Runtime configuration loaded from the environment."""

from __future__ import annotations

import functools
from pathlib import Path
from types import MappingProxyType

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from agency_chat.exceptions import ConfigurationError
from agency_chat.models.tiers import DEFAULT_TIER_PROFILES, ModelTier, TierProfile


class Settings(BaseSettings):
    """Settings for the chat pipeline.

    Every field reads ``AGENCY_CHAT_<FIELD>`` from the environment or a
    ``.env`` file. The API key additionally falls back to the standard
    ``ANTHROPIC_API_KEY`` variable.
    """

    model_config = SettingsConfigDict(
        env_prefix="AGENCY_CHAT_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    anthropic_api_key: SecretStr | None = Field(
        None,
        validation_alias=AliasChoices("AGENCY_CHAT_ANTHROPIC_API_KEY", "ANTHROPIC_API_KEY"),
    )

    # Rate limiting
    rate_limit: int = Field(20, gt=0)
    rate_window_seconds: float = Field(3600.0, gt=0)

    # Budget
    daily_token_budget: int = Field(33_000, gt=0)

    # Response cache
    cache_max_size: int | None = Field(1000, gt=0)
    cache_tiers: frozenset[ModelTier] = frozenset({ModelTier.CHEAP, ModelTier.MID})

    # History
    history_max_turns: int = Field(20, gt=0)
    history_compress_threshold: int = Field(10, gt=1)
    history_keep_recent: int = Field(2, gt=0)
    history_fallback_turns: int = Field(6, ge=0)
    history_max_tokens: int = Field(6000, gt=0)

    # Provider
    provider_timeout_seconds: float | None = Field(None, gt=0)
    tier_models: dict[ModelTier, str] = Field(default_factory=dict)

    # Ambient
    log_level: str = "INFO"
    usage_log_path: Path | None = None

    def require_api_key(self) -> str:
        """Return the API key or raise ``ConfigurationError``."""
        if self.anthropic_api_key is None or not self.anthropic_api_key.get_secret_value():
            msg = "AI assistant not configured: ANTHROPIC_API_KEY missing"
            raise ConfigurationError(msg)
        return self.anthropic_api_key.get_secret_value()

    def tier_profiles(self) -> MappingProxyType[ModelTier, TierProfile]:
        """Default tier profiles with any ``tier_models`` overrides applied."""
        if not self.tier_models:
            return DEFAULT_TIER_PROFILES
        return MappingProxyType(
            {
                tier: (
                    profile.model_copy(update={"model_id": self.tier_models[tier]})
                    if tier in self.tier_models
                    else profile
                )
                for tier, profile in DEFAULT_TIER_PROFILES.items()
            }
        )


@functools.cache
def get_settings() -> Settings:
    """Return the process-wide ``Settings``.

    Call ``get_settings.cache_clear()`` after changing the environment.
    """
    return Settings()
