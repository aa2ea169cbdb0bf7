"""Configuration loader with environment variable substitution."""

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging
import re

import jsonschema
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    'repair': {
        'output_suffix': '.fixed-xmp{timestamp}.jpg',
        'overwrite_originals': False,
        'verify_image_decode': False,
        'skip_repaired_outputs': True,
    },
    'workflow': {
        'extensions': ['.jpg', '.jpeg'],
        'parallel_workers': 4,
        'show_progress': True,
        'report_file': None,
    },
    'logging': {
        'level': 'INFO',
        'file': 'logs/xmp_repair.log',
        'console_output': True,
        'max_bytes': 10485760,
        'backup_count': 5,
    },
}

CONFIG_SCHEMA = {
    'type': 'object',
    'required': ['repair', 'workflow', 'logging'],
    'properties': {
        'repair': {
            'type': 'object',
            'properties': {
                'output_suffix': {'type': 'string', 'pattern': r'\{timestamp\}'},
                'overwrite_originals': {'type': 'boolean'},
                'verify_image_decode': {'type': 'boolean'},
                'skip_repaired_outputs': {'type': 'boolean'},
            },
        },
        'workflow': {
            'type': 'object',
            'properties': {
                'extensions': {
                    'type': 'array',
                    'items': {'type': 'string', 'pattern': r'^\.'},
                    'minItems': 1,
                },
                'parallel_workers': {'type': 'integer', 'minimum': 1},
                'show_progress': {'type': 'boolean'},
                'report_file': {'type': ['string', 'null']},
            },
        },
        'logging': {
            'type': 'object',
            'properties': {
                'level': {
                    'type': 'string',
                    'enum': ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                },
                'file': {'type': ['string', 'null']},
                'console_output': {'type': 'boolean'},
                'max_bytes': {'type': 'integer', 'minimum': 0},
                'backup_count': {'type': 'integer', 'minimum': 0},
            },
        },
    },
}


class ConfigLoader:
    """Load and validate configuration from YAML file."""

    def __init__(self, config_path: str = "config/config.yaml"):
        """Initialize configuration loader.

        Args:
            config_path: Path to configuration YAML file
        """
        self.config_path = Path(config_path)

    def load(self) -> Dict[str, Any]:
        """Load configuration with environment variable substitution.

        Values missing from the file fall back to ``DEFAULT_CONFIG``. If
        neither the file nor its ``.example`` sibling exists, the defaults
        are used as-is.

        Returns:
            Configuration dictionary

        Raises:
            yaml.YAMLError: If config file is invalid YAML
            ValueError: If config values fail validation
        """
        load_dotenv()

        source = self._resolve_path()
        if source is None:
            logger.warning(
                f"Config file not found: {self.config_path}. Using built-in defaults."
            )
            user_config = {}
        else:
            with open(source, 'r', encoding='utf-8') as f:
                user_config = yaml.safe_load(f) or {}

            if not isinstance(user_config, dict):
                raise ValueError(f"Configuration root must be a mapping: {source}")

        config = merge_config(DEFAULT_CONFIG, user_config)

        # Substitute environment variables
        config = self._substitute_env_vars(config)

        # Validate configuration
        self._validate(config)

        if source is not None:
            logger.info(f"Configuration loaded from: {source}")
        return config

    def _resolve_path(self) -> Optional[Path]:
        if self.config_path.exists():
            return self.config_path

        # Try example file
        example_path = Path(str(self.config_path) + ".example")
        if example_path.exists():
            logger.warning(
                f"Config file not found: {self.config_path}. "
                f"Using example: {example_path}"
            )
            return example_path

        return None

    def _substitute_env_vars(self, config: Any) -> Any:
        """Recursively substitute environment variables in config.

        Substitutes ${VAR_NAME} or ${VAR_NAME:default} patterns.

        Args:
            config: Configuration dict or value

        Returns:
            Config with substituted values
        """
        if isinstance(config, dict):
            return {k: self._substitute_env_vars(v) for k, v in config.items()}
        elif isinstance(config, list):
            return [self._substitute_env_vars(item) for item in config]
        elif isinstance(config, str):
            return self._substitute_string(config)
        else:
            return config

    def _substitute_string(self, value: str) -> str:
        """Substitute environment variables in string.

        Args:
            value: String potentially containing ${VAR} patterns

        Returns:
            String with substituted values
        """
        # Pattern: ${VAR_NAME} or ${VAR_NAME:default_value}
        pattern = r'\$\{([A-Z_][A-Z0-9_]*?)(?::([^}]*))?\}'

        def replace(match):
            var_name = match.group(1)
            default = match.group(2) if match.group(2) is not None else ""

            env_value = os.getenv(var_name)

            if env_value is None:
                if default:
                    logger.debug(
                        f"Environment variable {var_name} not set, "
                        f"using default: {default}"
                    )
                    return default
                else:
                    logger.warning(
                        f"Environment variable {var_name} not set and no default provided"
                    )
                    return match.group(0)  # Return original if no default

            return env_value

        return re.sub(pattern, replace, value)

    def _validate(self, config: Dict) -> None:
        """Validate configuration against ``CONFIG_SCHEMA``.

        Args:
            config: Configuration dictionary

        Raises:
            ValueError: If required fields are missing or invalid
        """
        try:
            jsonschema.validate(instance=config, schema=CONFIG_SCHEMA)
        except jsonschema.ValidationError as e:
            location = '.'.join(str(part) for part in e.absolute_path) or '<root>'
            raise ValueError(f"Invalid configuration at {location}: {e.message}") from e

        logger.debug("Configuration validation passed")


def merge_config(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep-merge ``override`` into a copy of ``base``.

    Nested dicts are merged key by key; any other value in ``override``
    replaces the base value.
    """
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_config(config_path: str = "config/config.yaml") -> Dict[str, Any]:
    """Convenience function to load configuration.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary
    """
    loader = ConfigLoader(config_path)
    return loader.load()
