"""Multiplier Engine: conditional adjustment of a hazard's risk level.

For one hazard the engine:
  1. keeps the active rules whose canonical ``applicable_hazards`` contain
     the canonical hazard id;
  2. deduplicates by ``characteristic_type``, keeping only the rule with
     the lowest ``priority`` (ties broken by rule name), so one business
     attribute is never counted twice;
  3. applies the survivors in ascending priority. A rule fires when its
     condition holds for ``characteristics[characteristic_type]``:
        threshold -- value >= threshold_value
        range     -- min_value <= value <= max_value
        boolean   -- value is truthy
     A firing rule multiplies the running level by ``multiplier_factor``;
     the running level is clamped to the risk scale after every step.

Exports:
    MultiplierOutcome -- adjusted level, rationale lines, applied rules
    MultiplierEngine  -- rule set + scale, with apply_multipliers() and rules_for()
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from src.config import RISK_SCALE_MAX, RISK_SCALE_MIN
from src.engine.canonical import canonicalize
from src.schemas.models import AppliedMultiplier, MultiplierRule

logger = logging.getLogger(__name__)


@dataclass
class MultiplierOutcome:
    """Result of applying multiplier rules to one hazard's base level.

    Fields:
        level:     Adjusted level, clamped to the scale (unrounded)
        rationale: Human-readable trace of fired rules and clamping
        applied:   Rules that fired, in application order
    """
    level: float
    rationale: list[str] = field(default_factory=list)
    applied: list[AppliedMultiplier] = field(default_factory=list)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def condition_met(rule: MultiplierRule, value) -> bool:
    """Test a rule's condition against one characteristic value.

    Missing values never satisfy a condition. Numeric conditions ignore
    booleans and non-numeric values.
    """
    if value is None:
        return False

    if rule.condition_type == "boolean":
        return bool(value)

    if rule.condition_type == "threshold":
        if _is_number(value) and rule.threshold_value is not None:
            return value >= rule.threshold_value
        return False

    if rule.condition_type == "range":
        if _is_number(value) and rule.min_value is not None and rule.max_value is not None:
            return rule.min_value <= value <= rule.max_value
        return False

    logger.warning("Unknown condition type '%s' on rule %s", rule.condition_type, rule.name)
    return False


class MultiplierEngine:
    """Applies an ordered, deduplicated rule set to base risk levels.

    Constructor args:
        rules:     Multiplier rules (inactive rules are ignored)
        scale_min: Lowest level the running value may reach
        scale_max: Highest level the running value may reach
    """

    def __init__(
        self,
        rules: Iterable[MultiplierRule],
        scale_min: float = RISK_SCALE_MIN,
        scale_max: float = RISK_SCALE_MAX,
    ):
        self.rules = [r for r in rules if r.is_active]
        self.scale_min = scale_min
        self.scale_max = scale_max

    def clamp(self, level: float) -> float:
        return max(self.scale_min, min(self.scale_max, level))

    def rules_for(self, hazard_id: str) -> list[MultiplierRule]:
        """Active rules for a hazard, one per characteristic type, in priority order."""
        canonical = canonicalize(hazard_id)
        candidates = sorted(
            (r for r in self.rules if canonical in r.applicable_hazards),
            key=lambda r: (r.priority, r.name),
        )

        selected: dict[str, MultiplierRule] = {}
        for rule in candidates:
            kept = selected.get(rule.characteristic_type)
            if kept is None:
                selected[rule.characteristic_type] = rule
            else:
                logger.debug(
                    "%s: dropping duplicate '%s' rule %s (priority %d), keeping %s (priority %d)",
                    canonical,
                    rule.characteristic_type,
                    rule.name,
                    rule.priority,
                    kept.name,
                    kept.priority,
                )
        return sorted(selected.values(), key=lambda r: (r.priority, r.name))

    def apply_multipliers(
        self, hazard_id: str, base_level: float, characteristics: Mapping
    ) -> MultiplierOutcome:
        """Apply the hazard's rules to ``base_level`` using ``characteristics``.

        Args:
            hazard_id:       Hazard identifier (any spelling)
            base_level:      Starting level on the risk scale
            characteristics: Characteristic type -> numeric or boolean value

        Returns:
            MultiplierOutcome with the clamped level and rationale trace.
        """
        level = self.clamp(float(base_level))
        outcome = MultiplierOutcome(level=level)

        for rule in self.rules_for(hazard_id):
            value = characteristics.get(rule.characteristic_type)
            if not condition_met(rule, value):
                continue

            unclamped = level * rule.multiplier_factor
            level = self.clamp(unclamped)
            outcome.applied.append(AppliedMultiplier(
                name=rule.name,
                characteristic_type=rule.characteristic_type,
                factor=rule.multiplier_factor,
                reasoning=rule.reasoning or rule.description,
            ))
            outcome.rationale.append(f"{rule.name} ×{rule.multiplier_factor:g}")
            if unclamped > self.scale_max:
                outcome.rationale.append(f"capped at maximum level {self.scale_max:g}")
            logger.debug(
                "%s: rule %s fired (%s=%r) -> level %.2f",
                hazard_id, rule.name, rule.characteristic_type, value, level,
            )

        outcome.level = level
        return outcome
