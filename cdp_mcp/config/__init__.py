"""
Layered configuration for cdp-mcp.

``BridgeConfig`` groups four pydantic sections: ``connection`` (where the
debugging endpoint lives and how long commands may take), ``launch`` (how a
browser is started), ``wait`` (condition polling) and ``server`` (MCP name
and log level). Values come from defaults, a built-in profile, a
``cdp-mcp.config.*`` file, ``CDP_MCP_*`` variables and explicit overrides,
in that order of increasing priority.

    config = load_config()                       # file + environment
    config = load_config_with_profile("debug")   # profile underneath
    config = BridgeConfig(connection=ConnectionOptions(port=9333))
"""

from .defaults import (
    DEFAULT_CHROMIUM_FLAGS,
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_PROFILE,
    ENV_PREFIX,
    HEADLESS_CHROMIUM_FLAGS,
    get_default_connection_config,
    get_default_launch_config,
)
from .env import (
    ENV_MAPPINGS,
    get_env,
    get_env_bool,
    get_env_float,
    get_env_int,
    get_env_key,
    load_env_config,
)
from .loader import (
    PROFILES,
    ConfigLoader,
    ConfigurationError,
    build_config,
    find_config_file,
    load_config,
    load_config_with_profile,
    load_file,
    load_profile,
    merge_configs,
    save_config,
)
from .options import (
    BridgeConfig,
    ConnectionOptions,
    LaunchOptions,
    ServerOptions,
    WaitOptions,
)

__all__ = [
    "BridgeConfig",
    "ConnectionOptions",
    "LaunchOptions",
    "WaitOptions",
    "ServerOptions",
    "ConfigLoader",
    "ConfigurationError",
    "PROFILES",
    "build_config",
    "find_config_file",
    "load_config",
    "load_config_with_profile",
    "load_file",
    "load_profile",
    "merge_configs",
    "save_config",
    "ENV_MAPPINGS",
    "ENV_PREFIX",
    "get_env",
    "get_env_bool",
    "get_env_float",
    "get_env_int",
    "get_env_key",
    "load_env_config",
    "DEFAULT_CHROMIUM_FLAGS",
    "DEFAULT_COMMAND_TIMEOUT",
    "DEFAULT_HOST",
    "DEFAULT_PORT",
    "DEFAULT_PROFILE",
    "HEADLESS_CHROMIUM_FLAGS",
    "get_default_connection_config",
    "get_default_launch_config",
]
