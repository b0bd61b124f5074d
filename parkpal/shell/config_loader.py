"""Configuration Loader - Imperative Shell.

This module handles loading configuration from YAML files and
environment variables. All I/O is contained here.

Models (Config, PushConfig) are defined in parkpal/core/config.py
to avoid information leakage between layers.
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml

from parkpal.core.config import Config, NotificationTextConfig, PushConfig
from parkpal.core.formatter import DEFAULT_BODY, DEFAULT_TITLE
from parkpal.shell.secret_manager_client import SecretManagerClient, SecretManagerConfig


logger = logging.getLogger(__name__)


def _get_secret_manager_client() -> Optional[SecretManagerClient]:
    """Get a Secret Manager client.

    Returns None if no GCP project is set (e.g., local development).
    """
    project_id = os.environ.get("GCP_PROJECT") or os.environ.get("GOOGLE_CLOUD_PROJECT")
    if project_id:
        return SecretManagerClient(SecretManagerConfig(project_id=project_id))
    return None


def _resolve_value(value: Any, secret_client: Optional[SecretManagerClient] = None) -> Any:
    """Resolve a value that may contain secret or env var placeholders.

    Args:
        value: Value to resolve (may contain ${...} placeholders)
        secret_client: Client for resolving secrets

    Returns:
        Resolved value
    """
    if not isinstance(value, str):
        return value

    if secret_client:
        return secret_client.resolve(value)

    # No secret client - only handle env vars
    if value.startswith("${") and value.endswith("}"):
        var_spec = value[2:-1]
        if not var_spec.startswith("secret:"):
            env_value = os.environ.get(var_spec)
            if env_value:
                return env_value
            logger.warning("Environment variable %s not set", var_spec)

    return value


def _parse_push(
    data: dict[str, Any],
    secret_client: Optional[SecretManagerClient] = None,
) -> PushConfig:
    """Parse push service settings from config data."""
    defaults = PushConfig()
    access_token = data.get("access_token")
    if access_token:
        access_token = _resolve_value(access_token, secret_client)
    if isinstance(access_token, str) and access_token.startswith("${"):
        logger.warning("Push access token %s could not be resolved, sending without it", access_token)
        access_token = None

    return PushConfig(
        endpoint=data.get("endpoint", defaults.endpoint),
        access_token=access_token or None,
        timeout_seconds=int(data.get("timeout_seconds", defaults.timeout_seconds)),
    )


def _parse_notification(data: dict[str, Any]) -> NotificationTextConfig:
    """Parse notification text from config data."""
    return NotificationTextConfig(
        title=data.get("title", DEFAULT_TITLE),
        body=data.get("body", DEFAULT_BODY),
    )


def _parse_presets(data: Any) -> tuple[float, ...]:
    """Parse the radius preset list."""
    return tuple(float(p) for p in data)


def load_config_from_dict(data: dict[str, Any]) -> Config:
    """Load configuration from a dictionary.

    This is a pure-ish function (only placeholder expansion has side effects).

    Args:
        data: Configuration dictionary

    Returns:
        Parsed Config object
    """
    secret_client = _get_secret_manager_client()
    defaults = Config()

    presets = defaults.radius_presets_miles
    if "radius_presets_miles" in data:
        presets = _parse_presets(data["radius_presets_miles"])

    return Config(
        firestore_project=data.get("firestore_project"),
        firestore_database=data.get("firestore_database"),
        reports_collection=data.get("reports_collection", defaults.reports_collection),
        users_collection=data.get("users_collection", defaults.users_collection),
        history_subcollection=data.get("history_subcollection", defaults.history_subcollection),
        retention_hours=float(data.get("retention_hours", defaults.retention_hours)),
        default_radius_miles=float(data.get("default_radius_miles", defaults.default_radius_miles)),
        radius_presets_miles=presets,
        report_max_distance_miles=float(
            data.get("report_max_distance_miles", defaults.report_max_distance_miles)
        ),
        location_threshold_meters=float(
            data.get("location_threshold_meters", defaults.location_threshold_meters)
        ),
        allow_any_user_delete=bool(data.get("allow_any_user_delete", False)),
        push=_parse_push(data.get("push") or {}, secret_client),
        notification=_parse_notification(data.get("notification") or {}),
    )


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from a YAML file.

    This method performs file I/O.

    Args:
        config_path: Path to YAML config file.
                    If None, uses CONFIG_PATH env var or default.

    Returns:
        Parsed Config object

    Raises:
        yaml.YAMLError: If config file is invalid YAML
    """
    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH", "config/config.yaml")

    path = Path(config_path)

    logger.info("Loading configuration from %s", path)

    if not path.exists():
        logger.warning("Config file not found: %s, using defaults", path)
        return Config()

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    if data is None:
        logger.warning("Config file is empty, using defaults")
        return Config()

    config = load_config_from_dict(data)

    logger.info(
        "Loaded config: reports in %s, retention %.1fh, %d radius presets",
        config.reports_collection,
        config.retention_hours,
        len(config.radius_presets_miles),
    )

    return config


def load_config_from_env() -> Config:
    """Load configuration from environment variables.

    Useful for simple deployments without a YAML file.

    Environment variables:
        FIRESTORE_PROJECT: GCP project holding the database
        FIRESTORE_DATABASE: Firestore database name
        REPORTS_COLLECTION: Report collection name
        RETENTION_HOURS: Hours before a report is purged
        EXPO_ACCESS_TOKEN: Expo access token (or use Secret Manager)
        EXPO_ACCESS_TOKEN_SECRET: Secret name in Secret Manager

    Returns:
        Config object from environment
    """
    secret_client = _get_secret_manager_client()
    defaults = Config()

    access_token = None
    secret_name = os.environ.get("EXPO_ACCESS_TOKEN_SECRET")
    if secret_client and secret_name:
        access_token = secret_client.get_secret(secret_name)
        if access_token:
            logger.info("Using Expo access token from Secret Manager")

    if not access_token:
        access_token = os.environ.get("EXPO_ACCESS_TOKEN") or None

    return Config(
        firestore_project=os.environ.get("FIRESTORE_PROJECT"),
        firestore_database=os.environ.get("FIRESTORE_DATABASE"),
        reports_collection=os.environ.get("REPORTS_COLLECTION", defaults.reports_collection),
        retention_hours=float(os.environ.get("RETENTION_HOURS", defaults.retention_hours)),
        push=PushConfig(access_token=access_token),
    )
