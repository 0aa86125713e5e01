"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, jewelctl.toml only contains
overrides. A fresh install needs no config file at all.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from jewelctl.domain.bracelet import BraceletRules

# --- jewelctl.toml sections ---


class BraceletConfig(BaseModel):
    """[bracelet] section."""

    model_config = {"frozen": True}

    default_wrist_size: float = 17.0
    rules: BraceletRules = Field(default_factory=BraceletRules)


class PersistenceConfig(BaseModel):
    """[persistence] section."""

    model_config = {"frozen": True}

    autosave_delay: float = 1.0
    ttl_hours: float = 24.0
    state_dir: str = ".jewelctl"
    state_key: str = "jewelry-designer-state"


class RetryProfileConfig(BaseModel):
    """One [retry.<category>] table. Delays are in seconds."""

    model_config = {"frozen": True}

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    backoff_factor: float = 2.0


class RetryConfig(BaseModel):
    """[retry] section: one backoff profile per operation category."""

    model_config = {"frozen": True}

    templates: RetryProfileConfig = Field(
        default_factory=lambda: RetryProfileConfig(
            max_attempts=4, base_delay=0.5, max_delay=5.0, backoff_factor=1.5
        )
    )
    components: RetryProfileConfig = Field(
        default_factory=lambda: RetryProfileConfig(
            max_attempts=3, base_delay=1.0, max_delay=8.0, backoff_factor=2.0
        )
    )
    orders: RetryProfileConfig = Field(
        default_factory=lambda: RetryProfileConfig(
            max_attempts=2, base_delay=2.0, max_delay=10.0, backoff_factor=2.0
        )
    )
    uploads: RetryProfileConfig = Field(
        default_factory=lambda: RetryProfileConfig(
            max_attempts=2, base_delay=1.5, max_delay=5.0, backoff_factor=2.0
        )
    )


class CatalogConfig(BaseModel):
    """[catalog] section."""

    model_config = {"frozen": True}

    path: str = "catalog.json"


class JewelConfig(BaseModel):
    """Root configuration composing all sections."""

    model_config = {"frozen": True}

    bracelet: BraceletConfig = Field(default_factory=BraceletConfig)
    persistence: PersistenceConfig = Field(default_factory=PersistenceConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
