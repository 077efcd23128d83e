"""Tests for the Strategy Matcher and Tier Selector.

Uses synthetic Strategy records covering every secondary-risk encoding,
the legacy applicable_risks fallback, inactive strategies and steps,
business-type filtering, ordering, and tier partition totality.
"""

import logging

import pytest

from src.engine.matcher import match_strategies
from src.engine.tiers import select_defaults
from src.schemas.models import Strategy


def _make_strategy(strategy_id, tier="optional", **fields) -> Strategy:
    data = {"strategy_id": strategy_id, "selection_tier": tier}
    data.update(fields)
    return Strategy.model_validate(data)


SUPPLY_CHAIN_RISKS = (
    '["supply_chain_disruption","supplier_failure","transportation_delay",'
    '"geopolitical_event","pandemic","pandemic_impact","port_closure","fuel_shortage"]'
)


def _catalog():
    return [
        _make_strategy("hurricane_prep", "essential", primary_risk="hurricane",
                       secondary_risks='["flooding", "hurricane", "flooding"]',
                       action_steps=[
                           {"step_id": "h1", "sort_order": 1},
                           {"step_id": "h_old", "sort_order": 2, "is_active": False},
                       ]),
        _make_strategy("flood_barriers", "recommended", primary_risk="flooding",
                       secondary_risks='"hurricane"'),
        _make_strategy("backup_power", "essential", primary_risk="powerOutage",
                       secondary_risks="[not json"),
        _make_strategy("supply_chain_protection_comprehensive", "recommended",
                       applicable_risks=SUPPLY_CHAIN_RISKS),
        _make_strategy("theft_prevention", "optional", primary_risk="break_in_theft",
                       secondary_risks="civil_unrest; fire"),
        _make_strategy("old_generator", "essential", primary_risk="power_outage",
                       is_active=False),
        _make_strategy("water_tank", "situational", primary_risk="drought",
                       applicable_business_types='["agriculture"]'),
    ]


def _ids(strategies):
    return [s.strategy_id for s in strategies]


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------

class TestMatching:

    def test_primary_match(self):
        assert _ids(match_strategies(_catalog(), ["drought"])) == ["water_tank"]

    def test_secondary_json_array_match(self):
        assert "hurricane_prep" in _ids(match_strategies(_catalog(), ["flooding"]))

    def test_secondary_bare_json_string_match(self):
        assert "flood_barriers" in _ids(match_strategies(_catalog(), ["hurricane"]))

    def test_secondary_delimited_text_match(self):
        assert _ids(match_strategies(_catalog(), ["fire"])) == ["theft_prevention"]

    def test_unparsable_secondary_still_matches_primary(self, caplog):
        with caplog.at_level(logging.WARNING):
            catalog = _catalog()
        assert "backup_power" in caplog.text
        assert _ids(match_strategies(catalog, ["power_outage"])) == ["backup_power"]

    def test_unparsable_secondary_never_matches_its_content(self):
        assert "backup_power" not in _ids(match_strategies(_catalog(), ["not_json"]))

    def test_each_strategy_once(self):
        matched = match_strategies(_catalog(), ["hurricane", "flooding", "flood"])
        assert _ids(matched) == ["flood_barriers", "hurricane_prep"]

    def test_duplicate_records_collapsed(self):
        catalog = _catalog() + [_make_strategy("water_tank", "essential", primary_risk="drought")]
        assert _ids(match_strategies(catalog, ["drought"])) == ["water_tank"]

    def test_inactive_strategy_never_matches(self):
        assert "old_generator" not in _ids(match_strategies(_catalog(), ["power_outage"]))

    def test_inactive_steps_removed(self):
        matched = match_strategies(_catalog(), ["hurricane"])
        prep = next(s for s in matched if s.strategy_id == "hurricane_prep")
        assert [st.step_id for st in prep.action_steps] == ["h1"]

    def test_catalog_not_mutated(self):
        catalog = _catalog()
        match_strategies(catalog, ["hurricane"])
        assert len(catalog[0].action_steps) == 2

    def test_input_spellings_canonicalized(self):
        assert _ids(match_strategies(_catalog(), ["powerOutage"])) == ["backup_power"]

    def test_empty_input(self):
        assert match_strategies(_catalog(), []) == []
        assert match_strategies(_catalog(), ["", None]) == []


class TestLegacyFallback:

    def test_pandemic_matches_supply_chain_strategy(self):
        assert "supply_chain_protection_comprehensive" in _ids(
            match_strategies(_catalog(), ["pandemic"])
        )

    def test_health_emergency_matches_as_canonical_of_pandemic(self):
        assert "supply_chain_protection_comprehensive" in _ids(
            match_strategies(_catalog(), ["health_emergency"])
        )

    def test_unrelated_hazard_does_not_match(self):
        assert "supply_chain_protection_comprehensive" not in _ids(
            match_strategies(_catalog(), ["earthquake", "drought"])
        )

    def test_legacy_list_ignored_when_primary_present(self):
        s = _make_strategy("modern", primary_risk="fire", applicable_risks='["drought"]')
        assert match_strategies([s], ["drought"]) == []


class TestFilteringAndOrder:

    def test_business_type_filter(self):
        assert match_strategies(_catalog(), ["drought"], business_type_id="hotel") == []
        assert _ids(match_strategies(_catalog(), ["drought"], business_type_id="agriculture")) == [
            "water_tank"
        ]

    def test_tier_order(self):
        matched = match_strategies(
            _catalog(), ["hurricane", "power_outage", "fire", "drought"], order="tier"
        )
        assert _ids(matched) == [
            "backup_power", "hurricane_prep", "flood_barriers", "theft_prevention", "water_tank",
        ]

    def test_default_order_by_id(self):
        matched = match_strategies(_catalog(), ["hurricane", "power_outage", "fire"])
        assert _ids(matched) == sorted(_ids(matched))

    def test_unknown_order_rejected(self):
        with pytest.raises(ValueError):
            match_strategies(_catalog(), ["fire"], order="cost")


# ---------------------------------------------------------------------------
# Tier selection
# ---------------------------------------------------------------------------

class TestTierSelector:

    def test_partition(self):
        selection = select_defaults(_catalog())
        assert _ids(selection.auto_selected) == [
            "hurricane_prep", "flood_barriers", "backup_power",
            "supply_chain_protection_comprehensive", "old_generator",
        ]
        assert _ids(selection.optional) == ["theft_prevention", "water_tank"]

    def test_total_and_disjoint(self):
        strategies = _catalog()
        selection = select_defaults(strategies)
        auto, optional = set(_ids(selection.auto_selected)), set(_ids(selection.optional))
        assert auto.isdisjoint(optional)
        assert auto | optional == set(_ids(strategies))
        assert len(selection.all_strategies) == len(strategies)

    def test_duplicates_collapsed(self):
        s = _make_strategy("fire_safety", "essential", primary_risk="fire")
        selection = select_defaults([s, s, s])
        assert _ids(selection.auto_selected) == ["fire_safety"]
        assert selection.optional == []

    def test_unknown_tier_is_optional(self):
        s = _make_strategy("odd", "critical", primary_risk="fire")
        selection = select_defaults([s])
        assert _ids(selection.optional) == ["odd"]

    def test_custom_auto_tiers(self):
        selection = select_defaults(_catalog(), auto_tiers=["essential"])
        assert "flood_barriers" in _ids(selection.optional)

    def test_warns_when_auto_selected_collapses(self, caplog):
        strategies = [
            _make_strategy("a", "essential"),
            _make_strategy("b", "optional"),
            _make_strategy("c", "situational"),
        ]
        with caplog.at_level(logging.WARNING, logger="src.engine.tiers"):
            select_defaults(strategies, min_auto_selected=2)
        assert "Only 1 of 3" in caplog.text

    def test_no_warning_without_optional(self, caplog):
        with caplog.at_level(logging.WARNING, logger="src.engine.tiers"):
            select_defaults([_make_strategy("a", "essential")], min_auto_selected=4)
        assert caplog.text == ""
