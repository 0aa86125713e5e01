"""Unified settings: CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs: CLI flags passed by Click
  2. Env vars: ``JEWELCTL_*`` prefix (``__`` separates nested keys,
     e.g. ``JEWELCTL_PERSISTENCE__TTL_HOURS=12``)
  3. TOML file: ``jewelctl.toml`` discovered via walk-up
  4. Code defaults: baked into the section models
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from jewelctl.config.discovery import find_config, read_toml
from jewelctl.config.models import (
    BraceletConfig,
    CatalogConfig,
    PersistenceConfig,
    RetryConfig,
)


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``jewelctl.toml`` file discovered via walk-up."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            self._data = read_toml(toml_path)

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        """Return the full TOML data dict for Pydantic to merge."""
        return self._data


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class JewelSettings(BaseSettings):
    """Unified settings for jewelctl.

    Attributes:
        project_root: Directory holding ``jewelctl.toml`` (or CWD if none);
            relative paths in the config resolve against it.
        config_path: The discovered or explicit config file, if any.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "JEWELCTL_",
        "env_nested_delimiter": "__",
    }

    project_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- TOML sections ---
    bracelet: BraceletConfig = Field(default_factory=BraceletConfig)
    persistence: PersistenceConfig = Field(default_factory=PersistenceConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        project_root: Path | None = None,
        **cli_flags: Any,
    ) -> JewelSettings:
        """Construct settings from a CLI invocation.

        Discovers ``jewelctl.toml`` via walk-up (or explicit *config_path*)
        and merges CLI flags as highest-priority overrides.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if p.is_file():
                toml_path = p
        else:
            toml_path = find_config(project_root)

        resolved_root = project_root
        if resolved_root is None:
            resolved_root = toml_path.parent if toml_path else Path.cwd()

        _tls.toml_path = toml_path
        try:
            return cls(
                project_root=resolved_root,
                config_path=toml_path,
                **cli_flags,
            )
        finally:
            _tls.toml_path = None

    def resolve(self, relative: str) -> Path:
        """Resolve a config-relative path against the project root."""
        path = Path(relative)
        return path if path.is_absolute() else self.project_root / path

    @property
    def state_dir(self) -> Path:
        return self.resolve(self.persistence.state_dir)

    @property
    def catalog_path(self) -> Path:
        return self.resolve(self.catalog.path)
