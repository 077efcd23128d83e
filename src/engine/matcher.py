"""Strategy Matcher: canonical hazards -> active mitigation strategies.

A strategy matches when its primary risk, or any of its secondary risks,
is one of the requested canonical hazards. Strategies with neither
populated fall back to the legacy ``applicable_risks`` list. All risk
lists were already canonicalized and deduplicated when the Strategy
record was validated, so a risk repeated in ``secondary_risks`` cannot
produce a second match.

Inactive strategies never match and inactive action steps are removed
from the returned copies.
"""

import logging
from collections.abc import Iterable

from src.engine.canonical import canonicalize_all
from src.schemas.models import Strategy

logger = logging.getLogger(__name__)

TIER_RANK: dict[str, int] = {
    "essential": 0,
    "recommended": 1,
    "optional": 2,
    "situational": 3,
}
"""Sort rank per selection tier for ``order="tier"``; unknown tiers sort last."""

MATCH_ORDERS = ("id", "tier")


def _tier_rank(strategy: Strategy) -> int:
    return TIER_RANK.get(strategy.selection_tier, len(TIER_RANK))


def strategy_matches(strategy: Strategy, hazards: set[str]) -> bool:
    """True if an active strategy addresses any hazard in ``hazards``."""
    if not strategy.is_active:
        return False
    return any(risk in hazards for risk in strategy.risk_ids())


def match_strategies(
    strategies: Iterable[Strategy],
    canonical_hazard_ids: Iterable[str],
    *,
    order: str = "id",
    business_type_id: str | None = None,
) -> list[Strategy]:
    """Select the strategies addressing any of the given hazards.

    Args:
        strategies: Candidate strategies (typically the cached active catalog).
        canonical_hazard_ids: Hazard ids; canonicalized again before matching.
        order: ``"id"`` sorts by strategy_id; ``"tier"`` sorts by tier rank,
            then strategy_id.
        business_type_id: When given, drop strategies whose
            ``applicable_business_types`` excludes it.

    Returns:
        Matching strategies, one per strategy_id, with inactive action
        steps removed.
    """
    if order not in MATCH_ORDERS:
        raise ValueError(f"order must be one of {MATCH_ORDERS}, got {order!r}")

    hazards = set(canonicalize_all(canonical_hazard_ids))
    if not hazards:
        return []

    matched: dict[str, Strategy] = {}
    for strategy in strategies:
        if not strategy_matches(strategy, hazards):
            continue
        if not strategy.applies_to_business_type(business_type_id):
            logger.debug(
                "Strategy %s excluded for business type %s",
                strategy.strategy_id, business_type_id,
            )
            continue
        if strategy.strategy_id in matched:
            logger.debug("Duplicate strategy record %s ignored", strategy.strategy_id)
            continue
        matched[strategy.strategy_id] = strategy.model_copy(
            update={"action_steps": strategy.active_steps()}
        )

    if order == "tier":
        result = sorted(matched.values(), key=lambda s: (_tier_rank(s), s.strategy_id))
    else:
        result = sorted(matched.values(), key=lambda s: s.strategy_id)

    logger.debug(
        "Matched %d strategies for hazards %s", len(result), sorted(hazards)
    )
    return result
