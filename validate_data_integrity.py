#!/usr/bin/env python3
"""
Data Integrity Validator for the BCP Risk Engine

Audits the store collections under data/ (or --data-dir):
- hazards.json, multipliers.json, strategies.json,
  business_types.json, locations.json (JSON validity + Pydantic schema)
- duplicate active multipliers per (characteristic_type, hazard)
- duplicate risks inside a strategy's risk lists
- strategy risk ids missing from the hazard catalog (rapidfuzz suggestion)
- strategies without an English name
- unknown selection tiers or strategy types
- catalog hazards no active strategy addresses

The engine deduplicates all of this at read time; the audit exists so the
underlying data gets fixed. WARN checks never fail the run.
"""

import argparse
import json
import sys
from collections import defaultdict
from pathlib import Path

from pydantic import ValidationError
from rapidfuzz import fuzz, process

from src.engine.canonical import canonicalize
from src.engine.fields import parse_string_list
from src.paths import DATA_DIR, collection_path
from src.schemas.models import (
    SELECTION_TIERS,
    STRATEGY_TYPES,
    BusinessType,
    HazardCatalogEntry,
    Location,
    MultiplierRule,
    Strategy,
)
from src.store.base import COLLECTION_KEYS

MODELS = {
    "hazards": HazardCatalogEntry,
    "multipliers": MultiplierRule,
    "strategies": Strategy,
    "business_types": BusinessType,
    "locations": Location,
}


class ValidationReport:
    """Tracks validation results."""

    def __init__(self):
        self.checks = []
        self.failed_checks = []

    def add_check(self, name: str, passed: bool, details: str = "", warn_only: bool = False):
        """Add a validation check result. ``warn_only`` downgrades a failure to WARN."""
        if passed:
            status = "PASS"
        elif warn_only:
            status = "WARN"
        else:
            status = "FAIL"
        self.checks.append({
            "name": name,
            "status": status,
            "details": details
        })
        if status == "FAIL":
            self.failed_checks.append(name)

    def print_report(self):
        """Print formatted validation report."""
        print("\n" + "="*80)
        print("BCP RISK ENGINE - DATA INTEGRITY REPORT")
        print("="*80 + "\n")

        symbols = {"PASS": "[+]", "WARN": "[!]", "FAIL": "[X]"}
        for check in self.checks:
            print(f"{symbols[check['status']]} [{check['status']}] {check['name']}")
            if check["details"]:
                for line in check["details"].split("\n"):
                    if line.strip():
                        print(f"    {line}")
            print()

        print("="*80)
        print(f"SUMMARY: {len(self.checks)} checks, {len(self.failed_checks)} failed")
        print("="*80 + "\n")

        return len(self.failed_checks) == 0


def _limited(lines: list[str], limit: int = 20) -> str:
    details = "\n".join(lines[:limit])
    if len(lines) > limit:
        details += f"\n... and {len(lines) - limit} more"
    return details


def check_json_validity(report: ValidationReport, data_dir: Path) -> dict[str, list[dict]]:
    """Check 1: Every collection file parses and holds a 'records' list.

    Returns the raw rows of each readable collection (empty when unreadable).
    """
    raw: dict[str, list[dict]] = {}
    errors = []
    for collection in COLLECTION_KEYS:
        path = collection_path(collection, data_dir)
        try:
            with open(path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            errors.append(f"{path.name}: {e}")
            raw[collection] = []
            continue
        records = payload.get("records") if isinstance(payload, dict) else None
        if not isinstance(records, list):
            errors.append(f"{path.name}: missing 'records' list")
            raw[collection] = []
            continue
        raw[collection] = [r for r in records if isinstance(r, dict)]

    details = "\n".join(errors) if errors else "All collection files are valid"
    report.add_check("JSON Validity", not errors, details)
    return raw


def check_schema_validation(report: ValidationReport, raw: dict[str, list[dict]]) -> dict[str, list]:
    """Check 2: Validate every record against its Pydantic model.

    Returns the validated records per collection.
    """
    validated: dict[str, list] = {}
    errors = []
    total = 0
    for collection, model in MODELS.items():
        key_field = COLLECTION_KEYS[collection]
        validated[collection] = []
        for row in raw.get(collection, []):
            total += 1
            try:
                validated[collection].append(model.model_validate(row))
            except ValidationError as e:
                record_id = row.get(key_field, "UNKNOWN")
                for err in e.errors():
                    field = " -> ".join(str(loc) for loc in err["loc"])
                    errors.append(f"{collection} '{record_id}', field '{field}': {err['msg']}")

    details = _limited(errors) if errors else f"All {total} records pass schema validation"
    report.add_check("Record Schema Validation", not errors, details)
    return validated


def check_duplicate_multipliers(report: ValidationReport, rules: list[MultiplierRule]):
    """Check 3: At most one active multiplier per (characteristic_type, hazard)."""
    groups: dict[tuple[str, str], list[str]] = defaultdict(list)
    for rule in rules:
        if not rule.is_active:
            continue
        for hazard in rule.applicable_hazards:
            groups[(rule.characteristic_type, hazard)].append(rule.name)

    errors = [
        f"{characteristic} / {hazard}: {', '.join(sorted(names))}"
        for (characteristic, hazard), names in sorted(groups.items())
        if len(names) > 1
    ]
    details = _limited(errors) if errors else "No duplicate active multipliers"
    report.add_check("Multiplier Deduplication", not errors, details)


def check_duplicate_strategy_risks(report: ValidationReport, raw_strategies: list[dict]):
    """Check 4: No hazard repeated within a strategy's primary/secondary or legacy list."""
    errors = []
    for row in raw_strategies:
        strategy_id = row.get("strategy_id", "UNKNOWN")
        primary = canonicalize(row.get("primary_risk"))
        secondary = [
            canonicalize(r)
            for r in parse_string_list(row.get("secondary_risks"), "secondary_risks", strategy_id)
        ]
        legacy = [
            canonicalize(r)
            for r in parse_string_list(row.get("applicable_risks"), "applicable_risks", strategy_id)
        ]
        for field, ids in (
            ("primary/secondary", ([primary] if primary else []) + secondary),
            ("applicable_risks", legacy),
        ):
            repeated = sorted({h for h in ids if h and ids.count(h) > 1})
            if repeated:
                errors.append(f"{strategy_id} {field}: {', '.join(repeated)} listed more than once")

    details = _limited(errors) if errors else "No duplicate risks in strategy lists"
    report.add_check("Strategy Risk Deduplication", not errors, details)


def suggest_hazard(risk_id: str, catalog_ids: list[str]) -> str | None:
    """Closest catalog hazard id for an unknown risk id, if any is close enough."""
    match = process.extractOne(risk_id, catalog_ids, scorer=fuzz.WRatio, score_cutoff=60)
    return match[0] if match else None


def check_unknown_strategy_risks(
    report: ValidationReport, strategies: list[Strategy], hazards: list[HazardCatalogEntry]
):
    """Check 5: Strategy risk ids resolve to catalog hazards (WARN)."""
    catalog_ids = sorted(h.hazard_id for h in hazards)
    known = set(catalog_ids)
    warnings = []
    for strategy in strategies:
        ids = [*strategy.risk_ids(), *strategy.applicable_risks]
        for risk_id in sorted(set(ids) - known):
            suggestion = suggest_hazard(risk_id, catalog_ids)
            hint = f" (did you mean '{suggestion}'?)" if suggestion else ""
            warnings.append(f"{strategy.strategy_id}: '{risk_id}' not in catalog{hint}")

    details = _limited(warnings) if warnings else "All strategy risks resolve to catalog hazards"
    report.add_check("Strategy Risk References", not warnings, details, warn_only=True)


def check_strategy_names(report: ValidationReport, strategies: list[Strategy]):
    """Check 6: Every strategy carries an English name or SME title."""
    missing = [
        s.strategy_id for s in strategies
        if "en" not in s.name and "en" not in s.sme_title
    ]
    details = (
        "Missing English name: " + ", ".join(sorted(missing))
        if missing else "All strategies have English names"
    )
    report.add_check("Strategy English Names", not missing, details)


def check_strategy_vocabulary(report: ValidationReport, strategies: list[Strategy]):
    """Check 7: selection_tier and strategy_type use known values (WARN).

    Unknown tiers are treated as optional by the engine.
    """
    warnings = []
    for s in strategies:
        if s.selection_tier not in SELECTION_TIERS:
            warnings.append(f"{s.strategy_id}: unknown selection_tier '{s.selection_tier}'")
        if s.strategy_type not in STRATEGY_TYPES:
            warnings.append(f"{s.strategy_id}: unknown strategy_type '{s.strategy_type}'")
    details = _limited(warnings) if warnings else "All strategy tiers and types are known"
    report.add_check("Strategy Tiers and Types", not warnings, details, warn_only=True)


def check_hazard_coverage(
    report: ValidationReport, strategies: list[Strategy], hazards: list[HazardCatalogEntry]
):
    """Check 8: Every active catalog hazard has at least one active strategy (WARN)."""
    covered = {risk for s in strategies if s.is_active for risk in s.risk_ids()}
    uncovered = sorted(h.hazard_id for h in hazards if h.is_active and h.hazard_id not in covered)
    details = (
        "No active strategy for: " + ", ".join(uncovered)
        if uncovered else f"All {len(hazards)} hazards have at least one strategy"
    )
    report.add_check("Hazard Strategy Coverage", not uncovered, details, warn_only=True)


def run_checks(data_dir: Path) -> ValidationReport:
    """Run every check against the collections in ``data_dir``."""
    report = ValidationReport()

    raw = check_json_validity(report, data_dir)
    validated = check_schema_validation(report, raw)
    check_duplicate_multipliers(report, validated["multipliers"])
    check_duplicate_strategy_risks(report, raw["strategies"])
    check_unknown_strategy_risks(report, validated["strategies"], validated["hazards"])
    check_strategy_names(report, validated["strategies"])
    check_strategy_vocabulary(report, validated["strategies"])
    check_hazard_coverage(report, validated["strategies"], validated["hazards"])
    return report


def main(argv: list[str] | None = None) -> int:
    """Run all validation checks."""
    parser = argparse.ArgumentParser(description="Audit BCP Risk Engine data files")
    parser.add_argument("--data-dir", type=Path, default=DATA_DIR,
                        help="Directory holding the collection JSON files")
    args = parser.parse_args(argv)

    print(f"Running validation checks on {args.data_dir}...\n")
    report = run_checks(args.data_dir)
    success = report.print_report()
    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
