"""Tests for the Multiplier Engine.

Covers condition evaluation (threshold / range / boolean), clamping to
the scale maximum, per-characteristic deduplication by priority, rule
ordering, and legacy hazard spellings in rule data.
"""

import logging

import pytest

from src.engine.multipliers import MultiplierEngine, condition_met
from src.schemas.models import MultiplierRule


def _rule(name, characteristic_type, factor=1.5, hazards=("hurricane",),
          condition_type="boolean", priority=1, **extra) -> MultiplierRule:
    data = {
        "name": name,
        "characteristic_type": characteristic_type,
        "condition_type": condition_type,
        "multiplier_factor": factor,
        "applicable_hazards": list(hazards),
        "priority": priority,
    }
    data.update(extra)
    return MultiplierRule.model_validate(data)


COASTAL = _rule("Coastal Location", "location_coastal", factor=1.3,
                hazards=("hurricane", "flood"), priority=1)
TOURISM = _rule("Tourism Dependency", "tourism_share", factor=1.5,
                hazards=("economicDownturn",), condition_type="threshold",
                threshold_value=70, priority=4)
EXPORT = _rule("Moderate Export Share", "export_share", factor=1.1,
               hazards=("economic_downturn",), condition_type="range",
               min_value=20, max_value=60, priority=5)


# ---------------------------------------------------------------------------
# Condition evaluation
# ---------------------------------------------------------------------------

class TestConditions:

    def test_boolean_truthy(self):
        assert condition_met(COASTAL, True)
        assert condition_met(COASTAL, 1)
        assert not condition_met(COASTAL, False)

    @pytest.mark.parametrize("value, expected", [
        (80, True), (70, True), (69.9, False), (0, False),
    ])
    def test_threshold_inclusive(self, value, expected):
        assert condition_met(TOURISM, value) is expected

    @pytest.mark.parametrize("value, expected", [
        (20, True), (40, True), (60, True), (19, False), (61, False),
    ])
    def test_range_inclusive(self, value, expected):
        assert condition_met(EXPORT, value) is expected

    @pytest.mark.parametrize("value", [None, True, "80", [80]])
    def test_numeric_conditions_need_numbers(self, value):
        assert not condition_met(TOURISM, value)

    def test_missing_value_never_fires_boolean(self):
        assert not condition_met(COASTAL, None)


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

class TestApply:

    def test_single_rule_fires(self):
        engine = MultiplierEngine([COASTAL])
        outcome = engine.apply_multipliers("hurricane", 5.0, {"location_coastal": True})
        assert outcome.level == pytest.approx(6.5)
        assert [a.name for a in outcome.applied] == ["Coastal Location"]
        assert outcome.rationale == ["Coastal Location ×1.3"]

    def test_rule_for_other_hazard_ignored(self):
        engine = MultiplierEngine([COASTAL])
        outcome = engine.apply_multipliers("fire", 5.0, {"location_coastal": True})
        assert outcome.level == 5.0
        assert outcome.applied == []

    def test_missing_characteristic_does_not_fire(self):
        outcome = MultiplierEngine([COASTAL]).apply_multipliers("hurricane", 5.0, {})
        assert outcome.level == 5.0

    def test_legacy_rule_spelling_matches_canonical_hazard(self):
        engine = MultiplierEngine([COASTAL])
        for spelling in ("flooding", "flood", "Flood"):
            outcome = engine.apply_multipliers(spelling, 4.0, {"location_coastal": True})
            assert outcome.level == pytest.approx(5.2)

    def test_inactive_rule_ignored(self):
        inactive = _rule("Old Coastal", "location_coastal", factor=2.0, is_active=False)
        outcome = MultiplierEngine([inactive]).apply_multipliers(
            "hurricane", 5.0, {"location_coastal": True}
        )
        assert outcome.level == 5.0

    def test_rules_apply_in_priority_order(self):
        late = _rule("Own Building", "own_building", factor=1.1, priority=12)
        early = _rule("Coastal Location", "location_coastal", factor=1.3, priority=1)
        engine = MultiplierEngine([late, early])
        outcome = engine.apply_multipliers(
            "hurricane", 2.0, {"own_building": True, "location_coastal": True}
        )
        assert [a.name for a in outcome.applied] == ["Coastal Location", "Own Building"]
        assert outcome.level == pytest.approx(2.0 * 1.3 * 1.1)

    def test_factor_below_one_lowers_level(self):
        mitigating = _rule("Generator On Site", "has_generator", factor=0.8)
        outcome = MultiplierEngine([mitigating]).apply_multipliers(
            "hurricane", 5.0, {"has_generator": True}
        )
        assert outcome.level == pytest.approx(4.0)


# ---------------------------------------------------------------------------
# Clamping
# ---------------------------------------------------------------------------

class TestClamping:

    def test_product_above_max_clamped(self):
        rules = [
            _rule("Coastal Location", "location_coastal", factor=1.5, priority=1),
            _rule("Flood-Prone Area", "location_flood_prone", factor=1.4, priority=2),
        ]
        outcome = MultiplierEngine(rules).apply_multipliers(
            "hurricane", 8.0, {"location_coastal": True, "location_flood_prone": True}
        )
        assert outcome.level == 10.0
        assert any("capped" in line for line in outcome.rationale)

    def test_custom_scale_max(self):
        engine = MultiplierEngine([COASTAL], scale_max=5.0)
        outcome = engine.apply_multipliers("hurricane", 4.5, {"location_coastal": True})
        assert outcome.level == 5.0

    def test_base_above_scale_clamped_before_rules(self):
        outcome = MultiplierEngine([]).apply_multipliers("hurricane", 14.0, {})
        assert outcome.level == 10.0

    def test_never_overshoots(self):
        rules = [
            _rule(f"Rule {i}", f"flag_{i}", factor=1.9, priority=i) for i in range(6)
        ]
        characteristics = {f"flag_{i}": True for i in range(6)}
        outcome = MultiplierEngine(rules).apply_multipliers("hurricane", 3.0, characteristics)
        assert outcome.level == 10.0


# ---------------------------------------------------------------------------
# Per-characteristic deduplication
# ---------------------------------------------------------------------------

class TestDeduplication:

    def test_lower_priority_value_wins(self):
        duplicate = _rule("Tourism Over 50", "tourism_share", factor=2.0,
                          hazards=("economic_downturn",), condition_type="threshold",
                          threshold_value=50, priority=9)
        engine = MultiplierEngine([duplicate, TOURISM])
        outcome = engine.apply_multipliers("economic_downturn", 4.0, {"tourism_share": 85})
        assert [a.name for a in outcome.applied] == ["Tourism Dependency"]
        assert outcome.level == pytest.approx(6.0)

    def test_dropped_rule_does_not_fire_when_winner_does_not(self):
        duplicate = _rule("Tourism Over 50", "tourism_share", factor=2.0,
                          hazards=("economic_downturn",), condition_type="threshold",
                          threshold_value=50, priority=9)
        engine = MultiplierEngine([TOURISM, duplicate])
        # 60 satisfies the dropped rule but not the kept one
        outcome = engine.apply_multipliers("economic_downturn", 4.0, {"tourism_share": 60})
        assert outcome.applied == []
        assert outcome.level == 4.0

    def test_dedup_is_per_hazard(self):
        hurricane_only = _rule("Coastal Hurricane", "location_coastal", factor=1.2,
                               hazards=("hurricane",), priority=1)
        flood_only = _rule("Coastal Flood", "location_coastal", factor=1.4,
                           hazards=("flooding",), priority=2)
        engine = MultiplierEngine([hurricane_only, flood_only])
        assert [r.name for r in engine.rules_for("flooding")] == ["Coastal Flood"]
        assert [r.name for r in engine.rules_for("hurricane")] == ["Coastal Hurricane"]

    def test_tie_broken_by_name(self):
        b = _rule("B Coastal", "location_coastal", factor=1.4, priority=1)
        a = _rule("A Coastal", "location_coastal", factor=1.2, priority=1)
        assert [r.name for r in MultiplierEngine([b, a]).rules_for("hurricane")] == ["A Coastal"]

    def test_dropped_rule_logged_at_debug(self, caplog):
        duplicate = _rule("Coastal Copy", "location_coastal", factor=1.3, priority=5)
        with caplog.at_level(logging.DEBUG, logger="src.engine.multipliers"):
            MultiplierEngine([COASTAL, duplicate]).rules_for("hurricane")
        assert "dropping duplicate" in caplog.text
        assert "Coastal Copy" in caplog.text
