"""
Configuration loader for the Waypoint client.

This module loads and merges configuration from the user-wide configuration
file and a project-specific one, then fills backend credentials from the
environment.
"""

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir

from waypoint.config.schema import ClientConfiguration
from waypoint.constants import (
    API_KEY_ENV_VARS,
    APP_NAME,
    BASE_URL_ENV_VAR,
    CONFIG_DIR_NAME,
    CONFIG_FILE_NAME,
)
from waypoint.exceptions import ConfigurationError, WaypointError

logger = logging.getLogger(__name__)


def get_config_dir() -> Path:
    """
    Get the user-wide configuration directory.

    Returns
    -------
    Path
        Path to the user configuration directory.
    """
    return Path(user_config_dir(APP_NAME))


def get_system_config_path() -> Path:
    """
    Get the path to the user-wide configuration file.

    Returns
    -------
    Path
        Path to the user configuration file.
    """
    return get_config_dir() / CONFIG_FILE_NAME


def _parse_toml(path: Path) -> dict[str, Any]:
    """
    Parse a TOML configuration file.

    Parameters
    ----------
    path : Path
        Path to the TOML file to parse.

    Returns
    -------
    dict[str, Any]
        Parsed configuration as a dictionary.

    Raises
    ------
    ConfigurationError
        If the file cannot be read or contains invalid TOML.
    """
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(
            f"Invalid TOML in {path}: {e}",
            config_file=str(path),
            cause=e,
        ) from e
    except OSError as e:
        raise ConfigurationError(
            f"Failed to read config file {path}: {e}",
            config_file=str(path),
            cause=e,
        ) from e


def _get_project_config(cwd: Path) -> Path | None:
    """
    Find the project-specific configuration file.

    Looks for ``.waypoint/config.toml`` inside the working directory.

    Parameters
    ----------
    cwd : Path
        Directory to search from.

    Returns
    -------
    Path | None
        Path to the project configuration file if found, None otherwise.
    """
    config_file: Path = cwd.resolve() / CONFIG_DIR_NAME / CONFIG_FILE_NAME
    if config_file.is_file():
        return config_file
    return None


def _merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Recursively merge two dictionaries.

    Values from `override` take precedence over `base`. Nested dictionaries
    are merged recursively; lists such as ``servers`` are replaced.

    Parameters
    ----------
    base : dict[str, Any]
        Base dictionary to merge into.
    override : dict[str, Any]
        Dictionary with values that override base.

    Returns
    -------
    dict[str, Any]
        Merged dictionary.

    Examples
    --------
    >>> _merge_dicts({"a": 1, "b": {"c": 2}}, {"b": {"d": 3}})
    {'a': 1, 'b': {'c': 2, 'd': 3}}
    """
    result: dict[str, Any] = base.copy()
    for key, value in override.items():
        if (
            key in result
            and isinstance(result[key], dict)
            and isinstance(value, dict)
        ):
            result[key] = _merge_dicts(result[key], value)
        else:
            result[key] = value

    return result


def _apply_environment(config_dict: dict[str, Any]) -> dict[str, Any]:
    """Fill the backend credential and endpoint from the environment when unset."""
    ai_model: dict[str, Any] = dict(config_dict.get("ai_model") or {})

    if not ai_model.get("api_key"):
        for name in API_KEY_ENV_VARS:
            value: str | None = os.environ.get(name)
            if value:
                ai_model["api_key"] = value
                logger.debug(f"Using API key from {name}")
                break

    if not ai_model.get("base_url") and os.environ.get(BASE_URL_ENV_VAR):
        ai_model["base_url"] = os.environ[BASE_URL_ENV_VAR]

    config_dict["ai_model"] = ai_model
    return config_dict


def load_configuration(
    cwd: Path | None = None,
    config_file: Path | None = None,
) -> ClientConfiguration:
    """
    Load configuration from user, project, and environment sources.

    Sources are applied in this order, later ones overriding earlier ones:

    1. User-wide configuration file (if it exists)
    2. Project configuration ``.waypoint/config.toml`` (if it exists)
    3. An explicit ``config_file`` (if given)
    4. Environment variables for the API key and base URL, only where the
       files leave them unset

    Parameters
    ----------
    cwd : Path | None, optional
        Project directory. If None, uses the current directory.
    config_file : Path | None, optional
        Explicit configuration file applied last.

    Returns
    -------
    ClientConfiguration
        Loaded and validated configuration object.

    Raises
    ------
    ConfigurationError
        If a file is unreadable or the merged configuration is invalid.

    Examples
    --------
    >>> config = load_configuration()
    >>> config = load_configuration(config_file=Path("waypoint.toml"))
    """
    cwd = cwd or Path.cwd()
    system_path: Path = get_system_config_path()

    config_dict: dict[str, Any] = {}

    if system_path.is_file():
        try:
            config_dict = _parse_toml(system_path)
            logger.debug(f"Loaded system config from {system_path}")
        except ConfigurationError as e:
            logger.warning(f"Skipping invalid system config {system_path}: {e}")

    project_path: Path | None = _get_project_config(cwd)
    if project_path:
        try:
            config_dict = _merge_dicts(config_dict, _parse_toml(project_path))
            logger.debug(f"Loaded project config from {project_path}")
        except ConfigurationError as e:
            logger.warning(f"Skipping invalid project config {project_path}: {e}")

    if config_file is not None:
        # An explicitly requested file must be valid.
        config_dict = _merge_dicts(config_dict, _parse_toml(config_file))
        logger.debug(f"Loaded config from {config_file}")

    config_dict = _apply_environment(config_dict)

    try:
        config: ClientConfiguration = ClientConfiguration(**config_dict)
    except WaypointError:
        raise
    except Exception as e:
        raise ConfigurationError(
            f"Invalid configuration: {e}",
            cause=e,
        ) from e

    logger.info(
        f"Configuration loaded: mode={config.mode.value}, "
        f"provider={config.ai_model.provider.value}, "
        f"{len(config.servers)} server(s)",
    )
    return config
