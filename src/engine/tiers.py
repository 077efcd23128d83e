"""Tier Selector: split matched strategies into auto-selected and optional.

Strategies in an auto-select tier (``essential`` and ``recommended`` by
default) are pre-selected in a new continuity plan; every other tier,
including unknown or missing values, lands in ``optional``. The two
buckets are disjoint and together hold every distinct input strategy.
"""

import logging
from collections.abc import Iterable

from src.config import AUTO_SELECT_TIERS
from src.schemas.models import Strategy, TierSelection

logger = logging.getLogger(__name__)


def select_defaults(
    strategies: Iterable[Strategy],
    auto_tiers: Iterable[str] = AUTO_SELECT_TIERS,
    min_auto_selected: int = 0,
) -> TierSelection:
    """Partition strategies by selection tier, preserving input order.

    Args:
        strategies: Matched strategies, possibly with repeated strategy_ids.
        auto_tiers: Tiers that are pre-selected.
        min_auto_selected: Warn when fewer strategies than this are
            auto-selected while optional ones exist. 0 disables the check.

    Returns:
        TierSelection with disjoint ``auto_selected`` and ``optional`` lists.
    """
    auto = {t.strip().lower() for t in auto_tiers}
    selection = TierSelection()
    seen: set[str] = set()

    for strategy in strategies:
        if strategy.strategy_id in seen:
            continue
        seen.add(strategy.strategy_id)
        if strategy.selection_tier in auto:
            selection.auto_selected.append(strategy)
        else:
            selection.optional.append(strategy)

    if (
        min_auto_selected
        and selection.optional
        and len(selection.auto_selected) < min_auto_selected
    ):
        logger.warning(
            "Only %d of %d matched strategies auto-selected (minimum %d); "
            "check selection_tier assignments",
            len(selection.auto_selected),
            len(seen),
            min_auto_selected,
        )
    return selection
