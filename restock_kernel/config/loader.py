"""
Config Loader — reads the properties-style settings file into RestockConfig.

Never fatal: every malformed or missing setting falls back to its default
with a warning. An absent file is created with the defaults written out.

Recognised keys:
  reset_time_value       positive integer (default 7)
  reset_time_unit        seconds | minutes | hours | days (default days)
  only_reset_when_empty  true | false (default true)
  include_barrels        true | false (default false); also accepted as
                         include_secondary_containers
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Union

from pydantic import ValidationError

from restock_kernel.models.reconciler import RestockConfig, TimeUnit

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "restock.properties"

TIME_VALUE_KEY = "reset_time_value"
TIME_UNIT_KEY = "reset_time_unit"
ONLY_WHEN_EMPTY_KEY = "only_reset_when_empty"
INCLUDE_SECONDARY_KEY = "include_barrels"
INCLUDE_SECONDARY_ALIAS = "include_secondary_containers"

_HEADER = "Restock Configuration"


class ConfigError(Exception):
    """Raised for a malformed setting. Always recovered inside load_config."""
    pass


def parse_properties(text: str) -> Dict[str, str]:
    """Parse `key=value` / `key: value` lines; `#` and `!` start comments."""
    props: Dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line[0] in "#!":
            continue
        positions = [i for i in (line.find("="), line.find(":")) if i >= 0]
        if not positions:
            props[line] = ""
            continue
        sep = min(positions)
        props[line[:sep].strip()] = line[sep + 1:].strip()
    return props


def render_properties(props: Dict[str, str], header: str = _HEADER) -> str:
    lines = [f"#{header}"]
    lines.extend(f"{key}={value}" for key, value in props.items())
    return "\n".join(lines) + "\n"


def _parse_bool(key: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise ConfigError(f"{key} must be true or false, got '{value}'")


def _parse_time_value(value: str) -> int:
    try:
        parsed = int(value.strip())
    except ValueError:
        raise ConfigError(f"{TIME_VALUE_KEY} must be an integer, got '{value}'") from None
    if parsed <= 0:
        raise ConfigError(f"{TIME_VALUE_KEY} must be greater than 0")
    return parsed


def _parse_time_unit(value: str) -> TimeUnit:
    try:
        return TimeUnit(value.strip().lower())
    except ValueError:
        raise ConfigError(f"Unrecognized time unit '{value}'") from None


def config_from_properties(
    props: Dict[str, str], base: Optional[RestockConfig] = None
) -> RestockConfig:
    """Resolve a property map against defaults, one fallback per bad setting."""
    base = base or RestockConfig()
    values = base.model_dump()

    if TIME_VALUE_KEY in props:
        try:
            values["reset_time_value"] = _parse_time_value(props[TIME_VALUE_KEY])
        except ConfigError as e:
            # Value and unit are only meaningful together.
            logger.warning(
                "%s. Using defaults: %s %s",
                e, base.reset_time_value, base.reset_time_unit.value,
            )
            props = {k: v for k, v in props.items() if k != TIME_UNIT_KEY}

    if TIME_UNIT_KEY in props:
        try:
            values["reset_time_unit"] = _parse_time_unit(props[TIME_UNIT_KEY])
        except ConfigError as e:
            logger.warning("%s. Defaulting to %s.", e, TimeUnit.DAYS.value)
            values["reset_time_unit"] = TimeUnit.DAYS

    if ONLY_WHEN_EMPTY_KEY in props:
        try:
            values["only_reset_when_empty"] = _parse_bool(
                ONLY_WHEN_EMPTY_KEY, props[ONLY_WHEN_EMPTY_KEY]
            )
        except ConfigError as e:
            logger.warning("%s. Using default: %s", e, base.only_reset_when_empty)

    secondary_key = next(
        (k for k in (INCLUDE_SECONDARY_KEY, INCLUDE_SECONDARY_ALIAS) if k in props),
        None,
    )
    if secondary_key is not None:
        try:
            values["include_secondary_containers"] = _parse_bool(
                secondary_key, props[secondary_key]
            )
        except ConfigError as e:
            logger.warning("%s. Using default: %s", e, base.include_secondary_containers)

    try:
        return RestockConfig.model_validate(values)
    except ValidationError as e:
        logger.warning("Invalid configuration (%s). Using defaults.", e.error_count())
        return base


def default_properties(config: Optional[RestockConfig] = None) -> Dict[str, str]:
    config = config or RestockConfig()
    return {
        TIME_VALUE_KEY: str(config.reset_time_value),
        TIME_UNIT_KEY: config.reset_time_unit.value,
        ONLY_WHEN_EMPTY_KEY: str(config.only_reset_when_empty).lower(),
        INCLUDE_SECONDARY_KEY: str(config.include_secondary_containers).lower(),
    }


def load_config(path: Union[str, Path] = CONFIG_FILE_NAME) -> RestockConfig:
    """
    Load settings from a properties file. Creates the file with defaults when
    it is absent. Never raises for bad content.
    """
    path = Path(path)
    config = RestockConfig()

    if not path.exists():
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(render_properties(default_properties()), encoding="utf-8")
            logger.info("Wrote default configuration to %s", path)
        except OSError as e:
            logger.warning("Could not write default configuration %s: %s", path, e)
    else:
        try:
            props = parse_properties(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Failed to read config %s (%s). Using defaults.", path, e)
        else:
            config = config_from_properties(props)
            logger.info("'%s' = %s", TIME_VALUE_KEY, config.reset_time_value)
            logger.info("'%s' = %s", TIME_UNIT_KEY, config.reset_time_unit.value)
            logger.info("'%s' = %s", ONLY_WHEN_EMPTY_KEY, config.only_reset_when_empty)
            logger.info("'%s' = %s", INCLUDE_SECONDARY_KEY, config.include_secondary_containers)

    logger.info(
        "Reset cooldown set to %s %s (%s ms)",
        config.reset_time_value, config.reset_time_unit.value, config.cooldown_ms,
    )
    return config
