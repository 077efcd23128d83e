"""Tests for hazard identifier canonicalization.

Covers alias lookup of historical spellings, the snake_case derivation
rule, totality on junk input, idempotence, and order-preserving
deduplication in canonicalize_all().
"""

import pytest

from src.engine.canonical import (
    CANONICAL_HAZARD_IDS,
    HAZARD_ALIASES,
    canonicalize,
    canonicalize_all,
    display_name,
    is_canonical_hazard,
)


# ---------------------------------------------------------------------------
# Alias table
# ---------------------------------------------------------------------------

class TestAliases:
    """Historical spellings resolve to the catalog vocabulary."""

    @pytest.mark.parametrize("raw, expected", [
        ("powerOutage", "power_outage"),
        ("PowerOutage", "power_outage"),
        ("flood", "flooding"),
        ("Flood", "flooding"),
        ("pandemic", "health_emergency"),
        ("PandemicDisease", "health_emergency"),
        ("cyberAttack", "cybersecurity_incident"),
        ("supplyChainDisruption", "supply_disruption"),
        ("crime", "break_in_theft"),
        ("mudslide", "landslide"),
    ])
    def test_known_alias(self, raw, expected):
        assert canonicalize(raw) == expected

    def test_every_alias_target_is_canonical(self):
        for target in HAZARD_ALIASES.values():
            assert target in CANONICAL_HAZARD_IDS

    def test_every_canonical_id_maps_to_itself(self):
        for hazard_id in CANONICAL_HAZARD_IDS:
            assert canonicalize(hazard_id) == hazard_id


# ---------------------------------------------------------------------------
# Derivation rule
# ---------------------------------------------------------------------------

class TestDerivation:
    """Unknown spellings go through the snake_case derivation."""

    def test_camel_case_split(self):
        assert canonicalize("volcanicEruption") == "volcanic_eruption"

    def test_free_text_then_alias(self):
        # Derived form "supply_chain_disruption" is itself an alias
        assert canonicalize("Supply Chain Disruption") == "supply_disruption"

    def test_hyphens_become_underscores(self):
        assert canonicalize("cyber-attack") == "cybersecurity_incident"

    def test_punctuation_stripped_and_underscores_collapsed(self):
        assert canonicalize("  Heat -- Wave!! ") == "heat_wave"

    def test_leading_trailing_underscores_trimmed(self):
        assert canonicalize("__storm__") == "storm"


# ---------------------------------------------------------------------------
# Totality and idempotence
# ---------------------------------------------------------------------------

SAMPLES = [
    "hurricane", "powerOutage", "Power Outage", "XMLParser", "flood",
    "  ", "!!!", "a-b_c d", "ÜberFlood", "123abc", "camelCaseID", "_x_",
]


class TestTotality:
    """Never raises, empty output for empty or non-string input."""

    @pytest.mark.parametrize("raw", [None, "", 42, 3.5, ["hurricane"], {"a": 1}])
    def test_non_string_or_empty_returns_empty(self, raw):
        assert canonicalize(raw) == ""

    def test_only_punctuation_returns_empty(self):
        assert canonicalize("!!!") == ""

    @pytest.mark.parametrize("raw", SAMPLES)
    def test_idempotent(self, raw):
        once = canonicalize(raw)
        assert canonicalize(once) == once


# ---------------------------------------------------------------------------
# canonicalize_all
# ---------------------------------------------------------------------------

class TestCanonicalizeAll:

    def test_first_occurrence_order(self):
        result = canonicalize_all(["power_outage", "hurricane", "powerOutage", "flood"])
        assert result == ["power_outage", "hurricane", "flooding"]

    def test_drops_empties(self):
        assert canonicalize_all(["", None, "fire", "!!"]) == ["fire"]

    def test_none_input(self):
        assert canonicalize_all(None) == []


class TestHelpers:

    def test_is_canonical_hazard(self):
        assert is_canonical_hazard("power_outage")
        assert not is_canonical_hazard("powerOutage")

    def test_display_name_known(self):
        assert display_name("powerOutage") == "Power Outage"

    def test_display_name_unknown_falls_back_to_title_case(self):
        assert display_name("volcanic_eruption") == "Volcanic Eruption"
