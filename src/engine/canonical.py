"""Hazard / risk identifier canonicalization.

Every hazard or risk identifier that enters the engine -- caller input,
multiplier ``applicable_hazards``, strategy ``primary_risk`` /
``secondary_risks`` / ``applicable_risks`` -- passes through
``canonicalize()`` before it is compared with anything else. No other
module compares hazard names directly.

Resolution order:
  1. Exact lookup of the raw string in HAZARD_ALIASES (historical spellings
     such as ``powerOutage``, ``PandemicDisease``, ``flood``).
  2. Derivation: underscore at camelCase boundaries, lowercase, whitespace
     and hyphens to underscores, strip everything but ``[a-z0-9_]``,
     collapse repeated underscores, trim leading/trailing underscores.
  3. Lookup of the derived form in HAZARD_ALIASES (so ``"Supply Chain
     Disruption"`` resolves like ``supply_chain_disruption``).

The function is total and idempotent: every alias target is itself a
canonical id that maps to itself, and the derivation is a fixed point on
its own output.
"""

import re
from collections.abc import Iterable

# 13 canonical hazard ids, grouped as in the admin hazard catalog
CANONICAL_HAZARD_IDS: frozenset[str] = frozenset({
    # Natural
    "hurricane",
    "flooding",
    "drought",
    "earthquake",
    "landslide",
    # Technological
    "power_outage",
    "fire",
    "cybersecurity_incident",
    # Human / social
    "civil_unrest",
    "break_in_theft",
    "health_emergency",
    # Economic
    "supply_disruption",
    "economic_downturn",
})

HAZARD_DISPLAY_NAMES: dict[str, str] = {
    "hurricane": "Hurricane / Tropical Storm",
    "flooding": "Flooding",
    "drought": "Drought",
    "earthquake": "Earthquake",
    "landslide": "Landslide / Mudslide",
    "power_outage": "Power Outage",
    "fire": "Fire",
    "cybersecurity_incident": "Cybersecurity Incident / Data Breach",
    "civil_unrest": "Civil Unrest / Protests",
    "break_in_theft": "Break-ins & Theft",
    "health_emergency": "Health Emergency / Pandemic",
    "supply_disruption": "Supply Chain Disruption",
    "economic_downturn": "Economic Downturn / Tourism Decline",
}

HAZARD_ALIASES: dict[str, str] = {
    # Hurricane
    "Hurricane": "hurricane",
    "hurricane": "hurricane",
    "tropical_storm": "hurricane",
    # Flooding (not "flood")
    "flood": "flooding",
    "Flood": "flooding",
    "flooding": "flooding",
    "Flooding": "flooding",
    # Drought
    "drought": "drought",
    "Drought": "drought",
    # Earthquake
    "earthquake": "earthquake",
    "Earthquake": "earthquake",
    # Landslide
    "landslide": "landslide",
    "Landslide": "landslide",
    "mudslide": "landslide",
    # Power outage
    "powerOutage": "power_outage",
    "PowerOutage": "power_outage",
    "power_outage": "power_outage",
    # Fire
    "fire": "fire",
    "Fire": "fire",
    # Cybersecurity (not "cyber_attack")
    "cyberAttack": "cybersecurity_incident",
    "CyberAttack": "cybersecurity_incident",
    "cyber_attack": "cybersecurity_incident",
    "cybersecurity_incident": "cybersecurity_incident",
    # Civil unrest
    "civilUnrest": "civil_unrest",
    "CivilUnrest": "civil_unrest",
    "civil_unrest": "civil_unrest",
    # Break-in / theft (not "theft" or "crime")
    "theft": "break_in_theft",
    "crime": "break_in_theft",
    "Crime": "break_in_theft",
    "crime_theft": "break_in_theft",
    "theft_vandalism": "break_in_theft",
    "break_in_theft": "break_in_theft",
    # Health emergency (not "pandemic")
    "pandemic": "health_emergency",
    "pandemicDisease": "health_emergency",
    "PandemicDisease": "health_emergency",
    "pandemic_disease": "health_emergency",
    "health_emergency": "health_emergency",
    # Supply disruption (not "supply_chain_disruption")
    "supplyChainDisruption": "supply_disruption",
    "SupplyChainDisruption": "supply_disruption",
    "supply_chain_disruption": "supply_disruption",
    "supply_disruption": "supply_disruption",
    # Economic downturn
    "economicDownturn": "economic_downturn",
    "EconomicDownturn": "economic_downturn",
    "economic_downturn": "economic_downturn",
}

_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_SEPARATORS = re.compile(r"[\s\-]+")
_DISALLOWED = re.compile(r"[^a-z0-9_]")
_REPEATED_UNDERSCORE = re.compile(r"_+")


def _derive(raw: str) -> str:
    """Apply the snake_case derivation rule to a raw identifier."""
    text = _CAMEL_BOUNDARY.sub(r"\1_\2", raw).lower()
    text = _SEPARATORS.sub("_", text)
    text = _DISALLOWED.sub("", text)
    text = _REPEATED_UNDERSCORE.sub("_", text)
    return text.strip("_")


def canonicalize(identifier) -> str:
    """Map any spelling of a hazard/risk identifier to its canonical form.

    Args:
        identifier: camelCase, PascalCase, snake_case or free text. ``None``
            and non-string values are accepted and yield ``""``.

    Returns:
        Canonical snake_case id; ``""`` for empty input.
    """
    if not isinstance(identifier, str) or not identifier:
        return ""
    alias = HAZARD_ALIASES.get(identifier)
    if alias is not None:
        return alias
    derived = _derive(identifier)
    return HAZARD_ALIASES.get(derived, derived)


def canonicalize_all(identifiers: Iterable) -> list[str]:
    """Canonicalize identifiers, dropping empties and later duplicates.

    Order follows the first occurrence of each distinct canonical id.
    """
    seen: set[str] = set()
    result: list[str] = []
    for identifier in identifiers or ():
        canonical = canonicalize(identifier)
        if canonical and canonical not in seen:
            seen.add(canonical)
            result.append(canonical)
    return result


def is_canonical_hazard(identifier: str) -> bool:
    """True if ``identifier`` is one of the catalog's canonical hazard ids."""
    return identifier in CANONICAL_HAZARD_IDS


def display_name(hazard_id: str) -> str:
    """Return the English display name for a hazard id, or a title-cased fallback."""
    canonical = canonicalize(hazard_id)
    if canonical in HAZARD_DISPLAY_NAMES:
        return HAZARD_DISPLAY_NAMES[canonical]
    return canonical.replace("_", " ").title()
