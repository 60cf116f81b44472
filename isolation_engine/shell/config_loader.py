"""Configuration Loader - Imperative Shell.

This module handles loading configuration from YAML files and
environment variables. All I/O is contained here.

Models (AppConfig, IsolationConfiguration) are defined in
isolation_engine/core/config.py to avoid information leakage between layers.
"""

import logging
import os
from dataclasses import fields
from datetime import tzinfo
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from isolation_engine.core.config import (
    AppConfig,
    ConfigurationError,
    IsolationConfiguration,
    ValidationError,
    ensure_valid,
    validate_configuration,
)


logger = logging.getLogger(__name__)


# Environment variable for each isolation window, e.g. ISOLATION_CONTACT_CASE
ENV_PREFIX = "ISOLATION_"


def _resolve_value(value: Any) -> Any:
    """Resolve a ${VAR} environment placeholder.

    Args:
        value: Value to resolve (may be a ${...} placeholder)

    Returns:
        Resolved value, or the original placeholder if the variable is unset
    """
    if not isinstance(value, str):
        return value

    if value.startswith("${") and value.endswith("}"):
        var_name = value[2:-1]
        env_value = os.environ.get(var_name)
        if env_value:
            return env_value
        logger.warning("Environment variable %s not set", var_name)

    return value


def _resolve_secret(value: Any) -> str | None:
    """Resolve a credential, treating an unset ${VAR} placeholder as missing."""
    resolved = _resolve_value(value)
    if isinstance(resolved, str) and resolved.startswith("${") and resolved.endswith("}"):
        return None
    return resolved


def _parse_days(name: str, value: Any) -> int:
    """Parse a window length, rejecting anything that is not a whole number.

    Integral floats (16.0) and digit strings ("16") are accepted; 16.9,
    booleans and other types are not.
    """
    resolved = _resolve_value(value)
    if isinstance(resolved, str):
        try:
            resolved = int(resolved)
        except ValueError:
            pass
    elif isinstance(resolved, float) and resolved.is_integer():
        resolved = int(resolved)

    if isinstance(resolved, bool) or not isinstance(resolved, int):
        raise ConfigurationError([
            ValidationError(field=name, message=f"Expected a whole number of days, got {value!r}"),
        ])
    return resolved


def _parse_isolation(data: dict[str, Any]) -> IsolationConfiguration:
    """Parse isolation windows from config data.

    Raises:
        ConfigurationError: If a window is not a whole number or is invalid
    """
    known = {f.name for f in fields(IsolationConfiguration)}
    unknown = sorted(set(data) - known)
    if unknown:
        logger.warning("Ignoring unknown isolation settings: %s", ", ".join(unknown))

    values = {name: _parse_days(name, data[name]) for name in known & set(data)}

    config = IsolationConfiguration(**values)
    _check(config)
    return config


def _check(config: IsolationConfiguration) -> None:
    """Log warnings and raise on validation errors."""
    result = validate_configuration(config)
    for warning in result.warnings:
        logger.warning("Isolation config %s: %s", warning.field, warning.message)
    ensure_valid(config)


def _parse_timezone(name: str | None) -> tzinfo:
    if not name:
        return AppConfig().timezone
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ConfigurationError([
            ValidationError(field="timezone", message=f"Unknown timezone {name!r}"),
        ])


def load_config_from_dict(data: dict[str, Any]) -> AppConfig:
    """Load configuration from a dictionary.

    Args:
        data: Configuration dictionary

    Returns:
        Parsed AppConfig object

    Raises:
        ConfigurationError: If the isolation windows are invalid
    """
    defaults = AppConfig()
    virology = data.get("virology", {}) or {}

    return AppConfig(
        isolation=_parse_isolation(data.get("isolation", {}) or {}),
        timezone=_parse_timezone(data.get("timezone")),
        firestore_database=data.get("firestore_database"),
        firestore_collection=data.get("firestore_collection", defaults.firestore_collection),
        virology_base_url=_resolve_value(virology.get("base_url", defaults.virology_base_url)),
        virology_api_key=_resolve_secret(virology.get("api_key")),
    )


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    This method performs file I/O.

    Args:
        config_path: Path to YAML config file.
                    If None, uses CONFIG_PATH env var or default.

    Returns:
        Parsed AppConfig object

    Raises:
        ConfigurationError: If the configuration is invalid
        yaml.YAMLError: If config file is invalid YAML
    """
    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH", "config/config.yaml")

    path = Path(config_path)

    logger.info("Loading configuration from %s", path)

    if not path.exists():
        logger.warning("Config file not found: %s, using defaults", path)
        return AppConfig()

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    if data is None:
        logger.warning("Config file is empty, using defaults")
        return AppConfig()

    config = load_config_from_dict(data)

    logger.info(
        "Loaded config: max isolation %d days, contact case %d days, timezone %s",
        config.isolation.max_isolation,
        config.isolation.contact_case,
        config.timezone,
    )

    return config


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables.

    Useful for simple deployments without a YAML file.

    Environment variables:
        ISOLATION_<WINDOW>: Any isolation window, e.g. ISOLATION_CONTACT_CASE
        ISOLATION_TIMEZONE: Reference timezone name
        FIRESTORE_DATABASE: Firestore database name
        FIRESTORE_COLLECTION: Collection holding isolation records
        VIROLOGY_BASE_URL: Virology API base URL
        VIROLOGY_API_KEY: Virology API bearer token

    Returns:
        AppConfig object from environment

    Raises:
        ConfigurationError: If the isolation windows are invalid
    """
    isolation = {
        f.name: os.environ[ENV_PREFIX + f.name.upper()]
        for f in fields(IsolationConfiguration)
        if ENV_PREFIX + f.name.upper() in os.environ
    }

    data: dict[str, Any] = {
        "isolation": isolation,
        "timezone": os.environ.get(ENV_PREFIX + "TIMEZONE"),
        "firestore_database": os.environ.get("FIRESTORE_DATABASE"),
        "virology": {},
    }
    if os.environ.get("FIRESTORE_COLLECTION"):
        data["firestore_collection"] = os.environ["FIRESTORE_COLLECTION"]
    if os.environ.get("VIROLOGY_BASE_URL"):
        data["virology"]["base_url"] = os.environ["VIROLOGY_BASE_URL"]
    if os.environ.get("VIROLOGY_API_KEY"):
        data["virology"]["api_key"] = os.environ["VIROLOGY_API_KEY"]

    return load_config_from_dict(data)
