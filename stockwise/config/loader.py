"""Configuration loader with defaults, YAML file and explicit overrides."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from .defaults import DefaultConfig, get_default_config

# Environment variable -> credentials field
CREDENTIAL_ENV_VARS = {
    "STOCKWISE_TWELVE_DATA_API_KEY": "twelve_data_api_key",
    "STOCKWISE_ALPHA_VANTAGE_API_KEY": "alpha_vantage_api_key",
    "STOCKWISE_NEWS_API_KEY": "news_api_key",
    "STOCKWISE_MARKETAUX_API_TOKEN": "marketaux_api_token",
}


@dataclass(frozen=True)
class ConfigLoader:
    """Manages configuration loading with 3-tier precedence."""

    config_dir: Path
    defaults: DefaultConfig

    @classmethod
    def create(cls, config_dir: Optional[Path] = None) -> "ConfigLoader":
        """Create a ConfigLoader instance."""
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent / "config"

        return cls(
            config_dir=Path(config_dir),
            defaults=get_default_config(),
        )

    def load_file_config(self) -> dict[str, Any]:
        """Load overrides from settings.yaml, empty if the file is absent."""
        settings_file = self.config_dir / "settings.yaml"

        if not settings_file.exists():
            return {}

        with open(settings_file) as f:
            file_config = yaml.safe_load(f)

        return file_config or {}

    def load_env_credentials(self, environ: Optional[Mapping[str, str]] = None) -> dict[str, Any]:
        """Read API credentials from the environment."""
        environ = os.environ if environ is None else environ
        credentials = {
            field_name: environ[var]
            for var, field_name in CREDENTIAL_ENV_VARS.items()
            if environ.get(var)
        }
        return {"credentials": credentials} if credentials else {}

    def merge_config(
        self,
        overrides: Optional[dict[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None
    ) -> dict[str, Any]:
        """
        Merge configuration with 3-tier precedence.

        Priority order:
        1. Explicit overrides (highest priority)
        2. settings.yaml, then credentials from the environment
        3. Global defaults (lowest priority)
        """
        config = self._dataclass_to_dict(self.defaults)

        config = self._deep_merge(config, self.load_file_config())
        config = self._deep_merge(config, self.load_env_credentials(environ))

        if overrides:
            config = self._deep_merge(config, overrides)

        return config

    def _dataclass_to_dict(self, obj: Any) -> dict[str, Any]:
        """Convert nested dataclasses to dictionary."""
        if hasattr(obj, '__dataclass_fields__'):
            result = {}
            for field_name in obj.__dataclass_fields__:
                value = getattr(obj, field_name)
                if hasattr(value, '__dataclass_fields__'):
                    result[field_name] = self._dataclass_to_dict(value)
                elif isinstance(value, tuple):
                    result[field_name] = list(value)
                elif isinstance(value, dict):
                    result[field_name] = dict(value)
                else:
                    result[field_name] = value
            return result
        return obj  # type: ignore[no-any-return]

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result
