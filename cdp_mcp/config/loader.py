"""
Configuration loading for cdp-mcp.

A configuration is built from layers, lowest priority first:

    defaults < profile < file < environment < overrides

Files are ``cdp-mcp.config.{json,yaml,yml,toml}``, looked up in the current
directory, ``~/.config/cdp-mcp`` and the home directory.
"""

import json
import logging
import tomllib
from pathlib import Path
from typing import Any, Callable, Iterator, Optional, Union

import yaml
from pydantic import ValidationError

from .defaults import (
    DEFAULT_CONFIG_EXTENSIONS,
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_CONFIG_SEARCH_PATHS,
)
from .env import load_env_config
from .options import BridgeConfig

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class ConfigurationError(Exception):
    """A configuration source is missing, malformed or holds invalid values."""


def _read_toml(path: Path) -> Any:
    return tomllib.loads(path.read_text(encoding="utf-8"))


_READERS: dict[str, Callable[[Path], Any]] = {
    ".json": lambda path: json.loads(path.read_text(encoding="utf-8")),
    ".yaml": lambda path: yaml.safe_load(path.read_text(encoding="utf-8")) or {},
    ".yml": lambda path: yaml.safe_load(path.read_text(encoding="utf-8")) or {},
    ".toml": _read_toml,
}

_WRITERS: dict[str, Callable[[dict[str, Any]], str]] = {
    "json": lambda data: json.dumps(data, indent=2, default=str),
    "yaml": lambda data: yaml.safe_dump(data, default_flow_style=False, sort_keys=False),
}
_WRITERS["yml"] = _WRITERS["yaml"]

_PARSE_ERRORS = (json.JSONDecodeError, yaml.YAMLError, tomllib.TOMLDecodeError)


def load_file(path: PathLike) -> dict[str, Any]:
    """Read one configuration file, choosing the parser by extension.

    Raises:
        ConfigurationError: If the file is missing, unreadable, of an unknown
            format, or its top level is not a mapping.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"Configuration file not found: {path}")

    reader = _READERS.get(path.suffix.lower())
    if reader is None:
        raise ConfigurationError(f"Unsupported configuration format: {path.suffix}")

    try:
        data = reader(path)
    except _PARSE_ERRORS as e:
        raise ConfigurationError(f"Could not parse {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration root must be a mapping: {path}")
    return data


def _candidates(
    filename: str, search_paths: list[str], extensions: list[str]
) -> Iterator[Path]:
    for directory in search_paths:
        base = Path(directory).expanduser()
        for extension in extensions:
            yield base / f"{filename}{extension}"


def find_config_file(
    filename: str = DEFAULT_CONFIG_FILENAME,
    search_paths: Optional[list[str]] = None,
    extensions: Optional[list[str]] = None,
) -> Optional[Path]:
    """First existing config file, directories searched in order."""
    candidates = _candidates(
        filename,
        DEFAULT_CONFIG_SEARCH_PATHS if search_paths is None else search_paths,
        DEFAULT_CONFIG_EXTENSIONS if extensions is None else extensions,
    )
    return next((path for path in candidates if path.is_file()), None)


def _merged(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = _merged(current, value)
        elif isinstance(value, dict):
            result[key] = _merged({}, value)
        else:
            result[key] = value
    return result


def merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge dictionaries; later ones win. Inputs are not modified."""
    result: dict[str, Any] = {}
    for config in configs:
        result = _merged(result, config)
    return result


def build_config(data: dict[str, Any]) -> BridgeConfig:
    try:
        return BridgeConfig.from_dict(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


# Built-in configuration profiles
PROFILES: dict[str, dict[str, Any]] = {
    "headless": {
        "launch": {"headless": True, "profile": "cdp-mcp-headless"},
    },
    "debug": {
        "launch": {"headless": False, "args": ["--auto-open-devtools-for-tabs"]},
        "server": {"log_level": "DEBUG"},
    },
}


def load_profile(name: str) -> dict[str, Any]:
    """Copy of a built-in profile.

    Raises:
        ConfigurationError: If there is no profile called ``name``.
    """
    try:
        return merge_configs(PROFILES[name])
    except KeyError:
        raise ConfigurationError(
            f"Unknown profile: {name}. Available profiles: {', '.join(PROFILES)}"
        ) from None


class ConfigLoader:
    """Builds a BridgeConfig from layered sources.

    The file is read once and cached; ``reload`` reads it again.

    Example:
        >>> loader = ConfigLoader(search_paths=["."])
        >>> config = loader.load(profile="headless")
    """

    def __init__(
        self,
        config_file: Optional[PathLike] = None,
        search_paths: Optional[list[str]] = None,
        load_env: bool = True,
        auto_find: bool = True,
    ):
        self.config_file = Path(config_file) if config_file else None
        self.search_paths = search_paths or DEFAULT_CONFIG_SEARCH_PATHS
        self.load_env = load_env
        self.auto_find = auto_find
        self._file_config: Optional[dict[str, Any]] = None

    def _file_layer(self) -> dict[str, Any]:
        if self._file_config is None:
            path = self.config_file
            if path is None and self.auto_find:
                path = find_config_file(search_paths=self.search_paths)
            if path is None:
                return {}
            logger.debug(f"Loading configuration from {path}")
            self._file_config = load_file(path)
        return self._file_config

    def _env_layer(self) -> dict[str, Any]:
        if not self.load_env:
            return {}
        try:
            return load_env_config()
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment value: {e}") from e

    def layers(
        self,
        overrides: Optional[dict[str, Any]] = None,
        profile: Optional[str] = None,
    ) -> Iterator[tuple[str, dict[str, Any]]]:
        """Non-empty ``(source, values)`` pairs, lowest priority first."""
        sources = (
            ("profile", lambda: load_profile(profile) if profile else {}),
            ("file", self._file_layer),
            ("environment", self._env_layer),
            ("overrides", lambda: overrides or {}),
        )
        for name, read in sources:
            values = read()
            if values:
                yield name, values

    def load(
        self,
        overrides: Optional[dict[str, Any]] = None,
        profile: Optional[str] = None,
    ) -> BridgeConfig:
        """Merge every layer and validate the result.

        Raises:
            ConfigurationError: If a source is malformed or a value invalid.
        """
        merged: dict[str, Any] = {}
        for name, values in self.layers(overrides, profile):
            logger.debug(f"Applying {name} configuration: {sorted(values)}")
            merged = merge_configs(merged, values)
        if profile:
            merged["profile"] = profile
        return build_config(merged)

    def reload(self) -> BridgeConfig:
        self._file_config = None
        return self.load()


def load_config(
    config_file: Optional[PathLike] = None,
    overrides: Optional[dict[str, Any]] = None,
    load_env: bool = True,
) -> BridgeConfig:
    """Load configuration from the usual sources."""
    return ConfigLoader(config_file=config_file, load_env=load_env).load(overrides=overrides)


def load_config_with_profile(
    profile: str,
    config_file: Optional[PathLike] = None,
    overrides: Optional[dict[str, Any]] = None,
) -> BridgeConfig:
    """Load configuration on top of a built-in profile."""
    return ConfigLoader(config_file=config_file).load(overrides=overrides, profile=profile)


def save_config(config: BridgeConfig, path: PathLike, format: str = "json") -> None:
    """Write ``config`` as JSON or YAML.

    Raises:
        ConfigurationError: For any other format.
    """
    writer = _WRITERS.get(format)
    if writer is None:
        raise ConfigurationError(f"Unsupported output format: {format}")
    Path(path).write_text(writer(config.to_dict()), encoding="utf-8")
