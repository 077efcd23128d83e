"""Pydantic v2 schema models for BCP Risk Engine records and results.

Provides validation models for every store collection and derived result:
- HazardCatalogEntry: admin-seeded hazard catalog rows
- MultiplierRule: conditional risk multipliers keyed by characteristic
- Strategy / ActionStep: mitigation strategies with ordered action steps
- BusinessType: business characteristics and hazard vulnerability
- Location: location hazard levels and coastal/urban facts
- RiskCalculationResult / AppliedMultiplier: per-request risk output
- TierSelection: auto-selected vs optional strategy split

JSON-encoded columns are decoded tolerantly; a record that still fails
validation is rejected and skipped by the caller.
"""

from src.schemas.models import (
    ACTION_PHASES,
    SELECTION_TIERS,
    STRATEGY_TYPES,
    ActionStep,
    AppliedMultiplier,
    BusinessType,
    HazardCatalogEntry,
    Location,
    MultiplierRule,
    RiskCalculationResult,
    Strategy,
    TierSelection,
)

__all__ = [
    # Enumerations
    "ACTION_PHASES",
    "SELECTION_TIERS",
    "STRATEGY_TYPES",
    # Store records
    "ActionStep",
    "BusinessType",
    "HazardCatalogEntry",
    "Location",
    "MultiplierRule",
    "Strategy",
    # Derived results
    "AppliedMultiplier",
    "RiskCalculationResult",
    "TierSelection",
]
