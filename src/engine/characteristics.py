"""Business characteristics consumed by the Multiplier Engine.

Characteristics are facts, not ratings: revenue shares in percent
(``tourism_share``), dependencies in percent (``power_dependency``), and
yes/no facts (``perishable_goods``, ``location_coastal``). Multiplier
rules test these values by ``characteristic_type``.

Three sources produce them:
  - characteristics_for(): a stored BusinessType merged with Location facts
  - convert_simplified_inputs(): the plan wizard's plain-language answers
  - convert_legacy_characteristics(): old 1-10 slider profiles

characteristics_from_answers() picks the converter for an answers payload.
"""

import logging
from typing import Any, Optional

from src.schemas.models import BusinessType, Location

logger = logging.getLogger(__name__)

FLOOD_PRONE_LEVEL = 7.0
"""Location flooding level above which ``location_flood_prone`` is set."""

LEGACY_FACT_THRESHOLD = 7
"""Slider value (1-10) at or above which a legacy rating becomes a yes/no fact."""

_CUSTOMER_BASE_SHARES = {
    # customer_base -> (tourism_share, local_customer_share)
    "mainly_tourists": (80, 15),
    "mix": (40, 50),
    "mainly_locals": (10, 85),
}

_POWER_DEPENDENCY = {"cannot_operate": 95, "partially": 50, "can_operate": 10}
_DIGITAL_DEPENDENCY = {"essential": 95, "helpful": 50, "not_used": 10}


def location_facts(location: Location) -> dict[str, bool]:
    """Characteristics derived from a location record."""
    return {
        "location_coastal": location.is_coastal,
        "location_urban": location.is_urban,
        "location_flood_prone": location.hazard_levels.get("flooding", 0.0) > FLOOD_PRONE_LEVEL,
    }


def characteristics_for(
    business_type: Optional[BusinessType], location: Optional[Location]
) -> dict[str, Any]:
    """Merge business-type characteristics with location facts.

    Location facts take precedence over same-named business values. Either
    argument may be None (unknown id); its contribution is then empty.
    """
    merged: dict[str, Any] = {}
    if business_type is not None:
        merged.update(business_type.characteristics)
    if location is not None:
        merged.update(location_facts(location))
    return merged


def convert_simplified_inputs(answers: dict) -> dict[str, Any]:
    """Convert wizard answers into fact-based characteristics.

    Recognized keys: customer_base, power_dependency, digital_dependency,
    imports_from_overseas, sells_perishable, minimal_inventory,
    expensive_equipment, is_coastal, is_urban, flood_risk. Missing answers
    take the least-exposed option.
    """
    tourism, local = _CUSTOMER_BASE_SHARES.get(
        answers.get("customer_base"), _CUSTOMER_BASE_SHARES["mainly_locals"]
    )
    perishable = bool(answers.get("sells_perishable"))
    minimal_inventory = bool(answers.get("minimal_inventory"))

    return {
        "location_coastal": bool(answers.get("is_coastal")),
        "location_urban": bool(answers.get("is_urban")),
        "location_flood_prone": (answers.get("flood_risk") or 0) > FLOOD_PRONE_LEVEL,
        "tourism_share": tourism,
        "local_customer_share": local,
        "export_share": 5,
        "power_dependency": _POWER_DEPENDENCY.get(answers.get("power_dependency"), 10),
        "digital_dependency": _DIGITAL_DEPENDENCY.get(answers.get("digital_dependency"), 10),
        "water_dependency": 90 if perishable else 30,
        "supply_chain_complex": bool(
            answers.get("imports_from_overseas") or minimal_inventory or perishable
        ),
        "perishable_goods": perishable,
        "just_in_time_inventory": minimal_inventory,
        "seasonal_business": False,
        "physical_asset_intensive": bool(answers.get("expensive_equipment")),
        "own_building": False,
        "significant_inventory": not minimal_inventory,
    }


def _slider_to_percent(value: float) -> float:
    # 1 -> 0%, 10 -> 100%
    return round((value - 1) * 100 / 9, 1)


def convert_legacy_characteristics(legacy: dict) -> dict[str, Any]:
    """Convert an old 1-10 slider profile into fact-based characteristics.

    Recognized keys: tourism_dependency, digital_dependency,
    physical_asset_intensity, supply_chain_complexity, seasonality_factor,
    is_coastal, is_urban. Missing sliders default to the midpoint 5.
    """
    def slider(key: str) -> float:
        value = legacy.get(key)
        return 5 if value is None else value

    tourism = _slider_to_percent(slider("tourism_dependency"))
    digital = _slider_to_percent(slider("digital_dependency"))
    supply_complex = slider("supply_chain_complexity") >= LEGACY_FACT_THRESHOLD

    logger.debug("Converted legacy characteristics %s", legacy)
    return {
        "location_coastal": bool(legacy.get("is_coastal")),
        "location_urban": bool(legacy.get("is_urban")),
        "tourism_share": tourism,
        "local_customer_share": round(100 - tourism, 1),
        "export_share": 0,
        "digital_dependency": digital,
        "power_dependency": digital,
        "water_dependency": 30,
        "supply_chain_complex": supply_complex,
        "perishable_goods": False,
        "just_in_time_inventory": supply_complex,
        "seasonal_business": slider("seasonality_factor") >= LEGACY_FACT_THRESHOLD,
        "physical_asset_intensive": slider("physical_asset_intensity") >= LEGACY_FACT_THRESHOLD,
        "own_building": False,
        "significant_inventory": slider("physical_asset_intensity") >= 5,
    }


LEGACY_SLIDER_KEYS = frozenset({
    "tourism_dependency",
    "physical_asset_intensity",
    "supply_chain_complexity",
    "seasonality_factor",
})


def characteristics_from_answers(answers: dict) -> dict[str, Any]:
    """Characteristics for a saved answers payload of either generation.

    Payloads carrying any of the old slider keys are legacy profiles;
    everything else is treated as wizard answers.
    """
    if not isinstance(answers, dict):
        raise ValueError(f"answers must be a JSON object, got {type(answers).__name__}")
    if LEGACY_SLIDER_KEYS & answers.keys():
        return convert_legacy_characteristics(answers)
    return convert_simplified_inputs(answers)
