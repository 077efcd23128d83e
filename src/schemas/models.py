"""Pydantic v2 validation models for BCP Risk Engine records and results.

Store records are validated on read. JSON-encoded columns are decoded by
the strict parsers in ``src.engine.fields`` inside ``mode="before"``
validators, so a malformed column degrades to an empty value while the
rest of the record is kept. A record that still fails validation (missing
id, negative factor, inverted range) is rejected as a whole and the
caller skips it.

Records modeled:
- hazards collection -> HazardCatalogEntry
- multipliers collection -> MultiplierRule
- strategies collection -> Strategy (containing ActionStep items)
- business_types collection -> BusinessType
- locations collection -> Location

Derived (never persisted):
- RiskCalculationResult, AppliedMultiplier, TierSelection
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

from src.engine.canonical import canonicalize
from src.engine.fields import (
    localized_text,
    parse_localized,
    parse_risk_list,
    parse_string_list,
)


# ── Enums as frozensets for tolerant validation ──

# Selection tiers assigned by administrators
SELECTION_TIERS = frozenset({"essential", "recommended", "optional", "situational"})

# Strategy types
STRATEGY_TYPES = frozenset({"risk_specific", "generic"})

# Action step phases
ACTION_PHASES = frozenset({"before", "during", "after"})


def _canonical_level_map(raw: Any) -> dict[str, float]:
    """Canonicalize the hazard keys of a hazard -> level mapping.

    When two spellings collapse onto one hazard the higher level wins.
    """
    if not raw:
        return {}
    if not isinstance(raw, dict):
        raise ValueError("hazard_levels must be a mapping of hazard id to level")
    levels: dict[str, float] = {}
    for key, value in raw.items():
        hazard_id = canonicalize(key)
        if not hazard_id or value is None:
            continue
        level = float(value)
        levels[hazard_id] = max(level, levels.get(hazard_id, level))
    return levels


# ── Hazard Catalog (hazards collection) ──

class HazardCatalogEntry(BaseModel):
    """A hazard known to the catalog, seeded by administrators."""

    hazard_id: str = Field(
        ...,
        description="Canonical hazard identifier (snake_case)",
        examples=["hurricane", "power_outage"],
    )
    name: dict[str, str] = Field(
        default_factory=dict,
        description="Display name keyed by locale",
        examples=[{"en": "Power Outage", "es": "Corte de Energía"}],
    )
    category: str = Field(
        default="natural",
        description="Hazard family (natural, technological, economic, social)",
    )
    default_level: Optional[float] = Field(
        default=None,
        ge=0.0,
        description="Base risk level used when no location or business data exists",
    )
    is_active: bool = True

    @field_validator("hazard_id", mode="before")
    @classmethod
    def canonical_hazard_id(cls, v: Any) -> str:
        canonical = canonicalize(v)
        if not canonical:
            raise ValueError("hazard_id must not be empty")
        return canonical

    @field_validator("name", mode="before")
    @classmethod
    def decode_name(cls, v: Any, info: ValidationInfo) -> dict[str, str]:
        return parse_localized(v, "name", info.data.get("hazard_id", "?"))

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, v: Any) -> str:
        return str(v or "natural").strip().lower()

    def display_name(self, locale: str = "en") -> str:
        return localized_text(self.name, locale, fallback=self.hazard_id)


# ── Multiplier Rule (multipliers collection) ──

class MultiplierRule(BaseModel):
    """Conditional adjustment that scales a hazard's risk level.

    ``applicable_hazards`` is canonicalized on read, so rules written with
    legacy spellings (``flood``, ``civilUnrest``) apply to the canonical
    hazards (``flooding``, ``civil_unrest``).
    """

    name: str = Field(..., min_length=1, examples=["Coastal Location"])
    description: str = ""
    characteristic_type: str = Field(
        ...,
        min_length=1,
        description="Business/location attribute the rule reacts to",
        examples=["tourism_share", "perishable_goods", "location_coastal"],
    )
    condition_type: Literal["threshold", "range", "boolean"] = Field(
        ...,
        description="How the characteristic value is tested",
    )
    threshold_value: Optional[float] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    multiplier_factor: float = Field(
        ...,
        gt=0.0,
        description="Factor applied to the running level when the rule fires",
        examples=[1.3, 1.5, 0.8],
    )
    applicable_hazards: list[str] = Field(
        default_factory=list,
        description="Canonical hazard ids the rule applies to",
    )
    priority: int = Field(default=100, description="Lower values apply first")
    is_active: bool = True
    reasoning: Optional[str] = None

    @field_validator("condition_type", mode="before")
    @classmethod
    def normalize_condition(cls, v: Any) -> str:
        return str(v or "").strip().lower()

    @field_validator("applicable_hazards", mode="before")
    @classmethod
    def decode_hazards(cls, v: Any, info: ValidationInfo) -> list[str]:
        return parse_risk_list(v, "applicable_hazards", info.data.get("name", "?"))

    @model_validator(mode="after")
    def check_range(self) -> MultiplierRule:
        if (
            self.condition_type == "range"
            and self.min_value is not None
            and self.max_value is not None
            and self.min_value > self.max_value
        ):
            raise ValueError(
                f"min_value ({self.min_value}) exceeds max_value ({self.max_value})"
            )
        return self


# ── Strategy + Action Steps (strategies collection) ──

class ActionStep(BaseModel):
    """A single step of a strategy, executed before, during or after an event."""

    step_id: str = Field(..., min_length=1)
    phase: str = Field(default="before", description="before / during / after")
    title: dict[str, str] = Field(default_factory=dict)
    sort_order: int = 0
    is_active: bool = True

    @field_validator("phase", mode="before")
    @classmethod
    def normalize_phase(cls, v: Any) -> str:
        phase = str(v or "before").strip().lower()
        return phase if phase in ACTION_PHASES else "before"

    @field_validator("title", mode="before")
    @classmethod
    def decode_title(cls, v: Any, info: ValidationInfo) -> dict[str, str]:
        return parse_localized(v, "title", info.data.get("step_id", "?"))


class Strategy(BaseModel):
    """Mitigation strategy with risk associations and action steps.

    Risk association precedence:
      - ``primary_risk`` and ``secondary_risks`` when either is populated
      - otherwise the legacy ``applicable_risks`` list
    """

    strategy_id: str = Field(
        ...,
        min_length=1,
        examples=["hurricane_preparedness", "backup_power"],
    )
    name: dict[str, str] = Field(default_factory=dict)
    sme_title: dict[str, str] = Field(default_factory=dict)
    primary_risk: Optional[str] = None
    secondary_risks: list[str] = Field(default_factory=list)
    applicable_risks: list[str] = Field(default_factory=list)
    applicable_business_types: list[str] = Field(default_factory=list)
    selection_tier: str = Field(
        default="optional",
        description="essential / recommended / optional / situational",
    )
    strategy_type: str = "risk_specific"
    implementation_cost: Optional[str] = None
    implementation_time: Optional[str] = None
    effectiveness: Optional[float] = None
    is_active: bool = True
    action_steps: list[ActionStep] = Field(default_factory=list)

    @field_validator("strategy_id", mode="before")
    @classmethod
    def strip_strategy_id(cls, v: Any) -> str:
        return str(v or "").strip()

    @field_validator("name", "sme_title", mode="before")
    @classmethod
    def decode_localized(cls, v: Any, info: ValidationInfo) -> dict[str, str]:
        return parse_localized(v, info.field_name, info.data.get("strategy_id", "?"))

    @field_validator("primary_risk", mode="before")
    @classmethod
    def canonical_primary(cls, v: Any) -> Optional[str]:
        return canonicalize(v) or None

    @field_validator("secondary_risks", "applicable_risks", mode="before")
    @classmethod
    def decode_risks(cls, v: Any, info: ValidationInfo) -> list[str]:
        return parse_risk_list(v, info.field_name, info.data.get("strategy_id", "?"))

    @field_validator("applicable_business_types", mode="before")
    @classmethod
    def decode_business_types(cls, v: Any, info: ValidationInfo) -> list[str]:
        return parse_string_list(
            v, "applicable_business_types", info.data.get("strategy_id", "?")
        )

    @field_validator("selection_tier", "strategy_type", mode="before")
    @classmethod
    def normalize_enum(cls, v: Any, info: ValidationInfo) -> str:
        default = "optional" if info.field_name == "selection_tier" else "risk_specific"
        return str(v or default).strip().lower()

    @property
    def uses_legacy_risks(self) -> bool:
        """True when neither primary nor secondary risks are populated."""
        return not self.primary_risk and not self.secondary_risks

    def risk_ids(self) -> list[str]:
        """Canonical hazard ids this strategy addresses, without duplicates."""
        if self.uses_legacy_risks:
            return list(self.applicable_risks)
        ids = [self.primary_risk] if self.primary_risk else []
        ids.extend(r for r in self.secondary_risks if r not in ids)
        return ids

    def applies_to_business_type(self, business_type_id: str | None) -> bool:
        if not business_type_id or not self.applicable_business_types:
            return True
        return (
            business_type_id in self.applicable_business_types
            or "all" in self.applicable_business_types
        )

    def active_steps(self) -> list[ActionStep]:
        """Active action steps ordered by ``sort_order``."""
        return sorted(
            (step for step in self.action_steps if step.is_active),
            key=lambda step: step.sort_order,
        )

    def display_name(self, locale: str = "en") -> str:
        return localized_text(
            self.sme_title or self.name, locale, fallback=self.strategy_id
        )


# ── Business Type / Location ──

class BusinessType(BaseModel):
    """Business type with fact-based characteristics and hazard vulnerability."""

    business_type_id: str = Field(..., min_length=1, examples=["restaurant"])
    name: dict[str, str] = Field(default_factory=dict)
    characteristics: dict[str, Any] = Field(
        default_factory=dict,
        description="Characteristic type -> number or boolean",
        examples=[{"tourism_share": 80, "perishable_goods": True}],
    )
    hazard_levels: dict[str, float] = Field(
        default_factory=dict,
        description="Canonical hazard id -> vulnerability level (0-10)",
    )

    @field_validator("name", mode="before")
    @classmethod
    def decode_name(cls, v: Any, info: ValidationInfo) -> dict[str, str]:
        return parse_localized(v, "name", info.data.get("business_type_id", "?"))

    @field_validator("hazard_levels", mode="before")
    @classmethod
    def canonical_levels(cls, v: Any) -> dict[str, float]:
        return _canonical_level_map(v)


class Location(BaseModel):
    """Location (parish / admin unit) with hazard risk levels."""

    location_id: str = Field(..., min_length=1, examples=["jm_kingston"])
    name: str = ""
    country_code: str = ""
    is_coastal: bool = False
    is_urban: bool = False
    hazard_levels: dict[str, float] = Field(
        default_factory=dict,
        description="Canonical hazard id -> location risk level (0-10)",
    )

    @field_validator("hazard_levels", mode="before")
    @classmethod
    def canonical_levels(cls, v: Any) -> dict[str, float]:
        return _canonical_level_map(v)


# ── Derived results ──

class AppliedMultiplier(BaseModel):
    """A multiplier rule that fired for one hazard."""

    model_config = ConfigDict(frozen=True)

    name: str
    characteristic_type: str
    factor: float
    reasoning: str = ""


class RiskCalculationResult(BaseModel):
    """Adjusted risk level for one canonical hazard, produced per request."""

    model_config = ConfigDict(frozen=True)

    hazard_id: str
    hazard_name: str
    base_level: float
    adjusted_level: float
    rating: str = Field(..., description="low / medium / high / very_high")
    reasoning: list[str] = Field(default_factory=list)
    applied_multipliers: list[AppliedMultiplier] = Field(default_factory=list)
    is_known_hazard: bool = True
    data_source: str = Field(
        default="catalog",
        description="Where the base level came from: location, business_type, catalog, default",
    )


class TierSelection(BaseModel):
    """Matched strategies split into the auto-selected and optional buckets."""

    auto_selected: list[Strategy] = Field(default_factory=list)
    optional: list[Strategy] = Field(default_factory=list)

    @property
    def all_strategies(self) -> list[Strategy]:
        return [*self.auto_selected, *self.optional]
