"""
Environment variable support for cdp-mcp configuration.

Every option field is reachable as ``CDP_MCP_<SECTION>_<FIELD>``, for example
``CDP_MCP_CONNECTION_PORT=9333`` or ``CDP_MCP_LAUNCH_ARGS=--lang=en,--mute-audio``.
The variable table is derived from the option models, so a new field gets its
variable without further wiring.
"""

import os
from typing import Any, Optional, Union, get_args, get_origin

from .defaults import ENV_PREFIX
from .options import BridgeConfig

TRUE_VALUES = frozenset({"true", "1", "yes", "on", "enabled"})


def get_env_key(key: str, prefix: str = ENV_PREFIX) -> str:
    """``"launch.start-url"`` -> ``"CDP_MCP_LAUNCH_START_URL"``"""
    return prefix + key.upper().replace(".", "_").replace("-", "_")


def _split(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


def convert_value(raw: str, annotation: Any) -> Any:
    """Convert an environment string to the type a field is annotated with.

    Raises:
        ValueError: If ``raw`` is not a valid value of that type.
    """
    origin = get_origin(annotation)
    if origin is Union:
        inner = [arg for arg in get_args(annotation) if arg is not type(None)]
        return convert_value(raw, inner[0]) if inner else raw
    if origin is list:
        (item_type,) = get_args(annotation) or (str,)
        return [convert_value(item, item_type) for item in _split(raw)]
    if annotation is bool:
        return raw.strip().lower() in TRUE_VALUES
    if annotation in (int, float):
        return annotation(raw.strip())
    return raw


def _build_mappings() -> dict[str, tuple[str, Any]]:
    mappings: dict[str, tuple[str, Any]] = {}
    for section, section_field in BridgeConfig.model_fields.items():
        model = section_field.annotation
        if not isinstance(model, type) or not hasattr(model, "model_fields"):
            continue
        for name, field in model.model_fields.items():
            key = f"{section}.{name}"
            mappings[key] = (get_env_key(key), field.annotation)
    return mappings


# "section.field" -> (variable name, field annotation)
ENV_MAPPINGS: dict[str, tuple[str, Any]] = _build_mappings()


def get_env(
    key: str,
    default: Any = None,
    target_type: Optional[Any] = None,
    prefix: str = ENV_PREFIX,
) -> Any:
    """Read one configuration value from the environment.

    Without ``target_type`` the value is converted to the type of ``default``,
    or returned as a string when there is no default.
    """
    raw = os.environ.get(get_env_key(key, prefix))
    if raw is None:
        return default
    if target_type is None:
        target_type = str if default is None else type(default)
    return convert_value(raw, target_type)


def get_env_bool(key: str, default: bool = False, prefix: str = ENV_PREFIX) -> bool:
    return get_env(key, default, bool, prefix)


def get_env_int(key: str, default: int = 0, prefix: str = ENV_PREFIX) -> int:
    return get_env(key, default, int, prefix)


def get_env_float(key: str, default: float = 0.0, prefix: str = ENV_PREFIX) -> float:
    return get_env(key, default, float, prefix)


def load_env_config() -> dict[str, Any]:
    """Collect every set ``CDP_MCP_*`` option into a nested dictionary.

    Raises:
        ValueError: Naming the variable whose value could not be converted.
    """
    result: dict[str, dict[str, Any]] = {}
    for key, (env_var, annotation) in ENV_MAPPINGS.items():
        raw = os.environ.get(env_var)
        if raw is None:
            continue
        try:
            value = convert_value(raw, annotation)
        except ValueError as e:
            raise ValueError(f"{env_var}={raw!r}: {e}") from e
        section, option = key.split(".", 1)
        result.setdefault(section, {})[option] = value
    return result
