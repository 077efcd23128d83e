"""BCP Risk Engine: command-line entry point.

Pipeline: Store -> Cache -> Canonicalize -> Multipliers -> Strategy Matcher -> Tier Selector

Usage:
    python -m src.main --risks hurricane,powerOutage --business-type restaurant --location jm_kingston
    python -m src.main --risks flood --order tier       # Tier-ordered recommendations
    python -m src.main --list-hazards                   # Print the hazard catalog
    python -m src.main --refresh-cache                  # Reload every cache scope
    python -m src.main --refresh-cache strategies       # Reload one scope
    python -m src.main --config path/to/config.json     # Alternate config
    python -m src.main --risks hurricane --answers plan_answers.json  # Saved plan answers
"""

import argparse
import json
import logging
import sys

from src.config import EngineConfigError, load_config
from src.engine.characteristics import characteristics_from_answers
from src.engine.service import SCOPES, RiskEngine
from src.schemas.models import RiskCalculationResult, TierSelection
from src.store.base import StoreUnavailableError
from src.utils import format_level

logger = logging.getLogger(__name__)


def list_hazards(engine: RiskEngine) -> None:
    """Print the active hazard catalog."""
    hazards = engine.hazards()
    print(f"\nHazard Catalog ({len(hazards)}):")
    print("-" * 72)
    for h in sorted(hazards, key=lambda h: (h.category, h.hazard_id)):
        default = format_level(h.default_level) if h.default_level is not None else "--"
        print(f"  [{h.category.upper():13s}] {h.hazard_id:25s} {h.display_name():35s} {default}")
    print()


def print_risks(results: list[RiskCalculationResult]) -> None:
    print(f"\nRisk Assessment ({len(results)} hazards):")
    print("-" * 72)
    for r in results:
        marker = "" if r.is_known_hazard else "  (not in catalog)"
        print(f"  {r.hazard_name:35s} {format_level(r.adjusted_level):>7s}  {r.rating.upper()}{marker}")
        for line in r.reasoning:
            print(f"{'':6s}- {line}")
    print()


def print_selection(selection: TierSelection) -> None:
    print(f"Auto-selected strategies ({len(selection.auto_selected)}):")
    for s in selection.auto_selected:
        print(f"  [{s.selection_tier.upper():11s}] {s.strategy_id:40s} {s.display_name()}")
    print(f"\nOptional strategies ({len(selection.optional)}):")
    for s in selection.optional:
        print(f"  [{s.selection_tier.upper():11s}] {s.strategy_id:40s} {s.display_name()}")
    print()


def load_answers(path: str) -> dict:
    """Load a plan answers file and convert it to characteristics.

    Raises:
        ValueError: If the file is unreadable, not JSON, or not an object.
    """
    try:
        with open(path, encoding="utf-8") as f:
            answers = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise ValueError(f"Cannot read answers file {path}: {exc}") from exc
    characteristics = characteristics_from_answers(answers)
    logger.info("Loaded %d characteristics from %s", len(characteristics), path)
    return characteristics


def main(argv: list[str] | None = None) -> int:
    """CLI entry point. Returns the process exit status."""
    parser = argparse.ArgumentParser(
        description="BCP Risk Engine: risk assessment and mitigation strategy recommendations"
    )
    parser.add_argument("--risks", type=str,
                        help="Comma-separated hazard ids (any spelling)")
    parser.add_argument("--business-type", type=str, help="Business type id")
    parser.add_argument("--location", type=str, help="Location id")
    parser.add_argument("--order", choices=["id", "tier"], default="id",
                        help="Strategy ordering (default: id)")
    parser.add_argument("--list-hazards", action="store_true", help="Print the hazard catalog")
    parser.add_argument("--refresh-cache", nargs="?", const="all", metavar="SCOPE",
                        help=f"Reload cache scope ({', '.join(SCOPES)}) or all")
    parser.add_argument("--answers", type=str,
                        help="JSON file of plan answers (wizard or legacy 1-10 sliders)")
    parser.add_argument("--config", type=str, help="Path to engine config JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    args = parser.parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        engine = RiskEngine.from_config(load_config(args.config))
    except EngineConfigError as exc:
        print(f"Error: {exc}")
        return 2

    try:
        if args.refresh_cache:
            scope = None if args.refresh_cache == "all" else args.refresh_cache
            if scope is not None and scope not in SCOPES:
                print(f"Unknown scope: {scope}")
                print(f"Available: {', '.join(SCOPES)}")
                return 1
            count = engine.refresh_cache(scope)
            print(f"Reloaded {count} records ({args.refresh_cache})")
            return 0

        if args.list_hazards:
            list_hazards(engine)
            return 0

        if not args.risks:
            parser.print_help()
            return 1

        characteristics = None
        if args.answers:
            try:
                characteristics = load_answers(args.answers)
            except ValueError as exc:
                print(f"Error: {exc}")
                return 2

        hazard_ids = [h for h in args.risks.split(",") if h.strip()]
        results = engine.compute_risks(
            hazard_ids, args.business_type, args.location, characteristics=characteristics
        )
        print_risks(results)
        selection = engine.recommend_strategies(
            results, business_type_id=args.business_type, order=args.order
        )
        print_selection(selection)
        return 0
    except StoreUnavailableError as exc:
        logger.error("Store unavailable: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
