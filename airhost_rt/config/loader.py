"""Configuration loader with 3-tier parameter precedence."""

import dataclasses
import os
import typing
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import structlog
import yaml

from ..errors import ConfigurationError
from .defaults import DefaultConfig, get_default_config
from .validation import ConfigValidator

logger = structlog.get_logger(__name__)

SETTINGS_FILE = "settings.yaml"

# Environment variable -> (section, key, converter)
ENV_OVERRIDES: dict[str, tuple[str, str, Any]] = {
    "JWT_SECRET": ("auth", "jwt_secret", str),
    "AIRHOST_WS_HOST": ("server", "host", str),
    "AIRHOST_WS_PORT": ("server", "port", int),
    "AIRHOST_LOG_LEVEL": ("logging", "level", str),
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

    def load_settings(self) -> dict[str, Any]:
        """Load deployment overrides from settings.yaml, if present."""
        settings_file = self.config_dir / SETTINGS_FILE

        if not settings_file.exists():
            return {}

        with open(settings_file) as f:
            settings = yaml.safe_load(f) or {}

        if not isinstance(settings, dict):
            raise ConfigurationError(
                f"{settings_file} must contain a mapping",
                context={"path": str(settings_file)}
            )

        return settings

    def load_env_overrides(self, environ: Optional[dict[str, str]] = None) -> dict[str, Any]:
        """Collect overrides from environment variables."""
        if environ is None:
            environ = dict(os.environ)

        overrides: dict[str, Any] = {}
        for env_name, (section, key, convert) in ENV_OVERRIDES.items():
            raw = environ.get(env_name)
            if raw is None or raw == "":
                continue
            try:
                value = convert(raw)
            except ValueError:
                raise ConfigurationError(
                    f"Invalid value for {env_name}: {raw!r}",
                    context={"env": env_name}
                )
            overrides.setdefault(section, {})[key] = value

        return overrides

    def merge_config(
        self,
        overrides: Optional[dict[str, Any]] = None,
        environ: Optional[dict[str, str]] = None
    ) -> dict[str, Any]:
        """
        Merge configuration with 3-tier precedence.

        Priority order:
        1. Explicit overrides and environment variables (highest priority)
        2. settings.yaml in the config directory
        3. Global defaults (lowest priority)
        """
        config = self._dataclass_to_dict(self.defaults)

        config = self._deep_merge(config, self.load_settings())
        config = self._deep_merge(config, self.load_env_overrides(environ))

        if overrides:
            config = self._deep_merge(config, overrides)

        return config

    def load(
        self,
        overrides: Optional[dict[str, Any]] = None,
        environ: Optional[dict[str, str]] = None
    ) -> DefaultConfig:
        """
        Merge, validate and build a typed configuration.

        Raises:
            ConfigurationError: If the merged configuration fails validation
        """
        merged = self.merge_config(overrides, environ)

        errors = ConfigValidator.validate_config(merged)
        if errors:
            error_msgs = [f"{err.field}: {err.message} (got: {err.value})" for err in errors]
            logger.error("Configuration validation failed", errors=error_msgs)
            raise ConfigurationError("Invalid configuration", errors=errors)

        return self._build(DefaultConfig, merged)

    def _dataclass_to_dict(self, obj: Any) -> dict[str, Any]:
        """Convert nested dataclasses to dictionary."""
        if hasattr(obj, '__dataclass_fields__'):
            result = {}
            for field_name in obj.__dataclass_fields__:
                value = getattr(obj, field_name)
                if hasattr(value, '__dataclass_fields__'):
                    result[field_name] = self._dataclass_to_dict(value)
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

    def _build(self, cls: type, data: dict[str, Any]) -> Any:
        """Build a (nested) frozen dataclass from a merged dictionary."""
        hints = typing.get_type_hints(cls)
        kwargs = {}

        for f in dataclasses.fields(cls):
            if f.name not in data:
                continue
            value = data[f.name]
            hint = hints.get(f.name)
            if dataclasses.is_dataclass(hint) and isinstance(value, dict):
                value = self._build(hint, value)
            elif isinstance(value, list):
                value = tuple(value)
            kwargs[f.name] = value

        unknown = set(data) - {f.name for f in dataclasses.fields(cls)}
        if unknown:
            logger.warning(
                "Ignoring unknown configuration keys",
                section=cls.__name__,
                keys=sorted(unknown)
            )

        return cls(**kwargs)
