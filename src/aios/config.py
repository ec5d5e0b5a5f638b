"""
aios Configuration

Runtime settings for routing and execution. Values can be passed
directly or read from AIOS_* environment variables.
"""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, Field

DEFAULT_MODEL = "claude-sonnet-4-6"

# env var -> field name
_ENV_FIELDS = {
    "AIOS_TOOL_TIMEOUT": "tool_timeout_seconds",
    "AIOS_DRY_RUN_TIMEOUT": "dry_run_timeout_seconds",
    "AIOS_CONFIRM_TIMEOUT": "confirmation_timeout_seconds",
    "AIOS_MIN_CONFIDENCE": "min_confidence",
    "AIOS_HYBRID_FALLBACK": "hybrid_fallback_confidence",
    "AIOS_MODEL": "model",
    "AIOS_LOG_LEVEL": "log_level",
    "AIOS_LOG_JSON": "log_json",
    "AIOS_AUDIT_EXPORT": "audit_export_path",
}


class AssistantConfig(BaseModel):
    """Settings shared by the router and the safety executor."""

    tool_timeout_seconds: float = Field(default=120.0, gt=0.0, le=3600.0)
    dry_run_timeout_seconds: float = Field(default=30.0, gt=0.0, le=600.0)
    confirmation_timeout_seconds: float | None = Field(default=None, gt=0.0)
    min_confidence: float = Field(default=0.35, ge=0.0, le=1.0)
    hybrid_fallback_confidence: float = Field(default=0.6, ge=0.0, le=1.0)
    model: str = DEFAULT_MODEL
    log_level: str = "INFO"
    log_json: bool = False
    audit_export_path: str | None = None

    @property
    def destructive_min_confidence(self) -> float:
        """Destructive tools are never picked on a weak match."""
        return min(1.0, self.min_confidence * 2)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides) -> AssistantConfig:
        """Build a config from AIOS_* variables; explicit overrides win."""
        environ = os.environ if environ is None else environ
        values: dict = {}
        for var, field in _ENV_FIELDS.items():
            raw = environ.get(var)
            if raw is not None and raw != "":
                values[field] = raw
        values.update(overrides)
        return cls.model_validate(values)
