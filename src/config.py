"""Engine configuration for the BCP Risk Engine.

Loads ``config/engine_config.json`` and fills every missing key from the
module-level defaults below, so callers can always read nested sections
with plain indexing after ``load_config()``.

Risk scale:
    Levels are continuous values on a bounded 0-10 scale. Multiplied
    levels are clamped to [RISK_SCALE_MIN, RISK_SCALE_MAX] and rounded to
    one decimal place in results. Hazards that are not in the catalog
    (and have no location or business-type level) start at
    UNKNOWN_HAZARD_FLOOR.

Example:
    config = load_config()
    config["cache"]["default_ttl_seconds"]   # -> 300.0
"""

import copy
import json
import logging
from pathlib import Path

from src.paths import ENGINE_CONFIG_PATH

logger = logging.getLogger(__name__)

RISK_SCALE_MIN: float = 0.0
"""Lowest representable risk level."""

RISK_SCALE_MAX: float = 10.0
"""Highest representable risk level; adjusted levels never exceed it."""

UNKNOWN_HAZARD_FLOOR: float = 5.0
"""Base level for hazards with no catalog, location, or business-type data."""

DEFAULT_CACHE_TTL_SECONDS: float = 300.0
"""Default cache entry lifetime (5 minutes), measured from insertion."""

AUTO_SELECT_TIERS: tuple[str, ...] = ("essential", "recommended")
"""Selection tiers whose strategies are pre-selected in a new plan."""

DEFAULT_CONFIG: dict = {
    "risk_scale": {
        "min": RISK_SCALE_MIN,
        "max": RISK_SCALE_MAX,
        "unknown_hazard_floor": UNKNOWN_HAZARD_FLOOR,
    },
    "cache": {
        "default_ttl_seconds": DEFAULT_CACHE_TTL_SECONDS,
    },
    "recommendation": {
        "auto_select_tiers": list(AUTO_SELECT_TIERS),
        "min_level": 0.0,
        "min_auto_selected": 4,
    },
    "store": {
        "data_dir": "data",
    },
}


class EngineConfigError(ValueError):
    """Raised when the engine configuration is unusable."""


def _merge(defaults: dict, overrides: dict) -> dict:
    """Recursively overlay ``overrides`` onto a deep copy of ``defaults``."""
    merged = copy.deepcopy(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def validate_config(config: dict) -> dict:
    """Check cross-field constraints and return the config unchanged.

    Raises:
        EngineConfigError: If the scale bounds are inverted, the floor lies
            outside the scale, or the cache TTL is not positive.
    """
    scale = config["risk_scale"]
    lo, hi = float(scale["min"]), float(scale["max"])
    if lo >= hi:
        raise EngineConfigError(
            f"risk_scale.min ({lo}) must be below risk_scale.max ({hi})"
        )
    floor = float(scale["unknown_hazard_floor"])
    if not lo <= floor <= hi:
        raise EngineConfigError(
            f"risk_scale.unknown_hazard_floor ({floor}) outside [{lo}, {hi}]"
        )
    if float(config["cache"]["default_ttl_seconds"]) <= 0:
        raise EngineConfigError("cache.default_ttl_seconds must be positive")
    return config


def load_config(path: Path | None = None) -> dict:
    """Load engine configuration, falling back to defaults for missing keys.

    Args:
        path: Config file to read. Defaults to ``config/engine_config.json``.
            A missing file is not an error: the defaults are returned.

    Returns:
        Fully populated configuration dict.

    Raises:
        EngineConfigError: If the file is not valid JSON or fails validation.
    """
    config_path = Path(path) if path else ENGINE_CONFIG_PATH
    try:
        with open(config_path, encoding="utf-8") as f:
            overrides = json.load(f)
    except FileNotFoundError:
        logger.info("No engine config at %s, using defaults", config_path)
        overrides = {}
    except json.JSONDecodeError as exc:
        raise EngineConfigError(f"Invalid JSON in {config_path}: {exc}") from exc

    return resolve_config(overrides)


def resolve_config(overrides: dict | None = None) -> dict:
    """Overlay ``overrides`` onto the defaults and validate the result."""
    return validate_config(_merge(DEFAULT_CONFIG, overrides or {}))
