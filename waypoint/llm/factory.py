"""
Factory for AI connection modes.

This module maps the configured mode selector to the connection mode
variant that implements it.
"""

import logging

from waypoint.config.schema import BackendConfig, ConnectionMode
from waypoint.exceptions import ConfigurationError
from waypoint.llm.api_key import DirectCredentialMode
from waypoint.llm.base import AIConnectionMode
from waypoint.llm.host_mediated import HostMediatedMode

logger = logging.getLogger(__name__)

CONNECTION_MODES: dict[ConnectionMode, type[AIConnectionMode]] = {
    ConnectionMode.API_KEY: DirectCredentialMode,
    ConnectionMode.HOST_MEDIATED: HostMediatedMode,
}


def create_connection_mode(
    mode: ConnectionMode | str,
    config: BackendConfig,
) -> AIConnectionMode:
    """
    Create the connection mode for a mode selector.

    Parameters
    ----------
    mode : ConnectionMode | str
        Mode selector, ``"api-key"`` or ``"host-mediated"``.
    config : BackendConfig
        Backend configuration handed to the mode.

    Returns
    -------
    AIConnectionMode
        Uninitialized connection mode.

    Raises
    ------
    ConfigurationError
        If the mode selector is unknown.

    Examples
    --------
    >>> mode = create_connection_mode("api-key", BackendConfig(api_key="sk-..."))
    """
    try:
        selector = ConnectionMode(mode)
    except ValueError as e:
        raise ConfigurationError(
            f"Unknown connection mode: {mode}",
            config_key="mode",
            cause=e,
        ) from e

    mode_class: type[AIConnectionMode] = CONNECTION_MODES[selector]
    logger.debug(f"Creating {mode_class.__name__} for mode '{selector.value}'")
    return mode_class(config)
