"""
Configuration loading infrastructure.
Reads optional YAML settings and merges them with command-line overrides.
"""

import yaml
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from ..domain.entities import CombinerSettings
from ..domain.errors import ConfigurationError


class YamlConfigLoader:
    """Loads combiner settings from a YAML mapping."""

    def __init__(self, config_path: Path):
        """Initialize with the settings file path."""
        self.config_path = Path(config_path)

    def load_raw(self) -> Dict[str, Any]:
        """Load the YAML document as a plain mapping."""
        if not self.config_path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {self.config_path}"
            )

        try:
            with open(self.config_path, 'r', encoding='utf-8') as file:
                raw_config = yaml.safe_load(file)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML syntax: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Error loading configuration: {e}") from e

        if raw_config is None:
            return {}

        if not isinstance(raw_config, dict):
            raise ConfigurationError(
                f"Configuration must be a mapping, got {type(raw_config).__name__}"
            )

        return raw_config


def _build_settings(values: Dict[str, Any]) -> CombinerSettings:
    try:
        return CombinerSettings(**values)
    except ValidationError as e:
        issues = "\n".join(
            f"- {'.'.join(str(loc) for loc in error['loc'])}: {error['msg']}"
            for error in e.errors()
        )
        raise ConfigurationError(f"Configuration validation failed:\n{issues}") from e


def load_settings(config_path: Optional[Path] = None, **overrides: Any) -> CombinerSettings:
    """Defaults, then the YAML file, then every override that is not None."""
    values: Dict[str, Any] = {}

    if config_path is not None:
        values.update(YamlConfigLoader(config_path).load_raw())

    values.update({key: value for key, value in overrides.items() if value is not None})

    return _build_settings(values)
