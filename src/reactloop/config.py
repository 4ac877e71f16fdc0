"""
reactloop Configuration

Explicit configuration values passed into the turn loop and provider
adapters at construction time. Hot reconfiguration goes through a
SettingsHolder with a single-writer update method; there is no ambient
module-level state.
"""

from __future__ import annotations

import os
import threading

from pydantic import BaseModel, Field, ValidationError

from reactloop.exceptions import ConfigurationError


class ProviderSettings(BaseModel):
    """Which vendor/model to call and how."""
    vendor: str = "ollama"
    model: str = "llama3.2"
    temperature: float = 0.7
    max_tokens: int = 8096
    api_key: str | None = None
    endpoint: str | None = None
    timeout_seconds: float = 180.0
    max_retries: int = 0  # SDK-level retries; the loop itself never retries a model call

    model_config = {"frozen": True}

    @classmethod
    def from_env(cls, **overrides) -> ProviderSettings:
        """Build settings from REACTLOOP_* environment variables.

        Keyword overrides take precedence over the environment.
        """
        env_map = {
            "vendor": "REACTLOOP_PROVIDER",
            "model": "REACTLOOP_MODEL",
            "temperature": "REACTLOOP_TEMPERATURE",
            "max_tokens": "REACTLOOP_MAX_TOKENS",
            "endpoint": "REACTLOOP_ENDPOINT",
            "timeout_seconds": "REACTLOOP_TIMEOUT",
        }
        values = {}
        for field, var in env_map.items():
            value = os.environ.get(var)
            if value:
                values[field] = value
        values.update({k: v for k, v in overrides.items() if v is not None})
        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid provider settings: {e}") from e


class LoopOptions(BaseModel):
    """Per-run bounds for the turn loop."""
    max_turns: int = Field(default=50, ge=1)
    context_token_budget: int = Field(default=80_000, ge=1)
    max_result_chars: int = Field(default=8000, ge=1)


class DispatchSettings(BaseModel):
    """Timeout, retry and gating policy for tool dispatch."""
    default_timeout: float = 30.0
    long_running_timeout: float = 120.0
    long_running_categories: list[str] = Field(default_factory=lambda: ["document", "browser"])
    max_retries: int = Field(default=2, ge=0)
    retry_delay: float = 0.3
    transient_codes: list[str] = Field(default_factory=lambda: ["EBUSY", "ETIMEDOUT", "EAGAIN"])
    gate_sensitive: bool = False


class ApprovalSettings(BaseModel):
    """How long a gated call waits for a decision before it is denied."""

    timeout_seconds: float = Field(default=300.0, gt=0)


class SettingsHolder:
    """Current provider configuration with a single-writer update.

    Readers take ``current`` (an immutable ProviderSettings) and never see
    a half-applied update. ``revision`` increases on every update so
    dependents can rebuild cached clients lazily.
    """

    def __init__(self, settings: ProviderSettings | None = None):
        self._settings = settings or ProviderSettings()
        self._revision = 0
        self._lock = threading.Lock()

    @property
    def current(self) -> ProviderSettings:
        return self._settings

    @property
    def revision(self) -> int:
        return self._revision

    def snapshot(self) -> tuple[int, ProviderSettings]:
        with self._lock:
            return self._revision, self._settings

    def update(self, **changes) -> ProviderSettings:
        """Apply changes and return the new settings."""
        with self._lock:
            try:
                updated = ProviderSettings.model_validate({**self._settings.model_dump(), **changes})
            except ValidationError as e:
                raise ConfigurationError(f"Invalid provider settings: {e}") from e
            self._settings = updated
            self._revision += 1
            return updated
