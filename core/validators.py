"""Configuration loading and validation for funcbridge.

Configuration comes from the FUNCBRIDGE_CONFIG environment variable (JSON)
or from a config.yaml file, and is validated against core.config_schema.
"""

import json
import logging
import os
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from core.config_schema import FuncbridgeConfig

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "FUNCBRIDGE_CONFIG"


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


def validate_config_structure(config: Any) -> None:
    """Validate basic configuration structure.

    Args:
        config: Parsed configuration

    Raises:
        ConfigurationError: If structure is invalid
    """
    if not isinstance(config, dict):
        raise ConfigurationError("Configuration must be a dictionary")

    if "handler" not in config:
        raise ConfigurationError(
            "Configuration missing 'handler' entry. "
            "Set it to the import path of your handler, e.g. 'myapp.main:handle'."
        )

    if "adapters" in config and not isinstance(config["adapters"], dict):
        raise ConfigurationError("'adapters' section must be a dictionary")


def get_enabled_adapters(config: FuncbridgeConfig) -> List[str]:
    """Get the names of enabled adapters, in dispatch order.

    Args:
        config: Validated configuration

    Returns:
        List of enabled adapter names

    Raises:
        ConfigurationError: If no adapter is enabled
    """
    enabled = [
        name
        for name, adapter_config in config.adapters
        if adapter_config.enabled
    ]

    if not enabled:
        raise ConfigurationError(
            "No adapters enabled. Set 'enabled: true' for at least one entry "
            "of the 'adapters' section."
        )

    return enabled


def parse_config(config: Any) -> FuncbridgeConfig:
    """Validate a configuration dictionary against the schema.

    Args:
        config: Parsed configuration dictionary

    Returns:
        Validated configuration model

    Raises:
        ConfigurationError: If validation fails
    """
    validate_config_structure(config)

    try:
        parsed = FuncbridgeConfig.model_validate(config)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    get_enabled_adapters(parsed)
    return parsed


def load_and_validate_config(config_path: str = "config.yaml") -> FuncbridgeConfig:
    """Load and validate configuration from a YAML file.

    Args:
        config_path: Path to config.yaml file

    Returns:
        Validated configuration model

    Raises:
        ConfigurationError: If validation fails
        FileNotFoundError: If config file doesn't exist
    """
    try:
        with open(config_path, "r") as f:
            config = yaml.safe_load(f)
    except FileNotFoundError:
        raise FileNotFoundError(
            f"Configuration file not found: {config_path}\n"
            "Create config.yaml based on the example in the repository."
        )
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}")

    if config is None:
        raise ConfigurationError(f"Configuration file {config_path} is empty")

    parsed = parse_config(config)

    logger.info(
        "Configuration validated",
        extra={
            "config_path": config_path,
            "adapters": get_enabled_adapters(parsed),
        },
    )

    return parsed


def load_config(
    config_path: str = "config.yaml", environ: Optional[Dict[str, str]] = None
) -> FuncbridgeConfig:
    """Load configuration from the environment, falling back to a YAML file.

    Args:
        config_path: Path to config.yaml used when the variable is unset
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Validated configuration model

    Raises:
        ConfigurationError: If the configuration is invalid
        FileNotFoundError: If neither source is available
    """
    environ = os.environ if environ is None else environ

    config_json = environ.get(CONFIG_ENV_VAR)
    if config_json:
        try:
            config = json.loads(config_json)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Failed to parse {CONFIG_ENV_VAR} as JSON: {e}"
            ) from e
        logger.info("Loaded configuration from environment variable")
        return parse_config(config)

    return load_and_validate_config(config_path)


def get_logging_config(config: Any) -> Dict[str, Any]:
    """Get logging settings from a raw or validated configuration.

    Never raises: unusable input yields the defaults.

    Args:
        config: Configuration dictionary or FuncbridgeConfig

    Returns:
        Dictionary with 'level' and 'pretty' keys
    """
    if isinstance(config, FuncbridgeConfig):
        return config.logging.model_dump()

    logging_config = config.get("logging") if isinstance(config, dict) else None
    if not isinstance(logging_config, dict):
        logging_config = {}

    return {
        "level": str(logging_config.get("level", "INFO")).upper(),
        "pretty": bool(logging_config.get("pretty", False)),
    }
