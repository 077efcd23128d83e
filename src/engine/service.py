"""RiskEngine: the facade the application layer calls.

Pipeline per request:
    caller -> cache (miss -> store read -> validate) -> canonicalize
           -> multiplier engine -> strategy matcher -> tier selector -> caller

Only store-backed catalog lists are cached, one entry per collection:

    hazards:catalog        active HazardCatalogEntry list
    multipliers:active     active MultiplierRule list
    strategies:active      active Strategy list
    business_types:all     BusinessType list
    locations:all          Location list

RiskCalculationResult lists depend on caller input and are never cached.
After an administrative write the admin layer calls ``notify_write()``
with the collection it changed; the next read reloads that scope.

Base level per hazard, first available wins:
    location hazard level -> business-type vulnerability level
    -> catalog default_level -> configured unknown_hazard_floor
"""

import logging
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, ValidationError

from src.config import resolve_config
from src.engine.cache import RecommendationCache
from src.engine.canonical import canonicalize_all, display_name
from src.engine.characteristics import characteristics_for
from src.engine.matcher import match_strategies
from src.engine.multipliers import MultiplierEngine
from src.engine.tiers import select_defaults
from src.paths import PROJECT_ROOT
from src.schemas.models import (
    BusinessType,
    HazardCatalogEntry,
    Location,
    MultiplierRule,
    RiskCalculationResult,
    Strategy,
    TierSelection,
)
from src.store.base import COLLECTION_KEYS, RecordStore
from src.store.json_store import JsonFileStore
from src.utils import format_level, level_to_rating, round_level

logger = logging.getLogger(__name__)

# scope -> (cache key, record model, active rows only)
SCOPES: dict[str, tuple[str, type[BaseModel], bool]] = {
    "hazards": ("hazards:catalog", HazardCatalogEntry, True),
    "multipliers": ("multipliers:active", MultiplierRule, True),
    "strategies": ("strategies:active", Strategy, True),
    "business_types": ("business_types:all", BusinessType, False),
    "locations": ("locations:all", Location, False),
}

# Store collections map one-to-one onto cache scopes
COLLECTION_SCOPES: dict[str, str] = {collection: collection for collection in SCOPES}


class RiskEngine:
    """Computes risk levels and strategy recommendations from store data.

    Args:
        store: Record provider for the five collections.
        config: Engine configuration (merged over defaults). Defaults apply
            when omitted.
        cache: Shared cache. A new one is created from the config TTL when
            omitted.
        clock: Clock for a newly created cache; ignored when ``cache`` is given.
    """

    def __init__(
        self,
        store: RecordStore,
        config: Optional[dict] = None,
        cache: Optional[RecommendationCache] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.store = store
        self.config = resolve_config(config)
        self.cache = cache if cache is not None else RecommendationCache(
            default_ttl=float(self.config["cache"]["default_ttl_seconds"]),
            clock=clock,
        )

        scale = self.config["risk_scale"]
        self.scale_min = float(scale["min"])
        self.scale_max = float(scale["max"])
        self.unknown_floor = float(scale["unknown_hazard_floor"])

        rec = self.config["recommendation"]
        self.auto_select_tiers = tuple(rec["auto_select_tiers"])
        self.min_level = float(rec["min_level"])
        self.min_auto_selected = int(rec["min_auto_selected"])

    @classmethod
    def from_config(
        cls, config: Optional[dict] = None, clock: Optional[Callable[[], float]] = None
    ) -> "RiskEngine":
        """Build an engine over the JSON-file store named in ``store.data_dir``."""
        resolved = resolve_config(config)
        data_dir = Path(resolved["store"]["data_dir"])
        if not data_dir.is_absolute():
            data_dir = PROJECT_ROOT / data_dir
        return cls(JsonFileStore(data_dir), config=resolved, clock=clock)

    # ── Store-backed catalog reads (cached) ──

    def _load(self, scope: str) -> list[BaseModel]:
        """Read and validate one collection; malformed rows are skipped."""
        _, model, active_only = SCOPES[scope]
        key_field = COLLECTION_KEYS[scope]
        rows = self.store.find(scope)

        records: list[BaseModel] = []
        seen: set[str] = set()
        skipped = 0
        for row in rows:
            try:
                record = model.model_validate(row)
            except ValidationError as exc:
                skipped += 1
                logger.warning(
                    "Skipping malformed %s record %s: %d validation error(s): %s",
                    scope,
                    row.get(key_field, "?"),
                    exc.error_count(),
                    "; ".join(e["msg"] for e in exc.errors()),
                )
                continue
            if active_only and not getattr(record, "is_active", True):
                continue
            record_key = getattr(record, key_field)
            if record_key in seen:
                logger.warning("Duplicate %s record %s ignored", scope, record_key)
                continue
            seen.add(record_key)
            records.append(record)

        logger.info(
            "Loaded %d %s records (%d malformed skipped)", len(records), scope, skipped
        )
        return records

    def _cached(self, scope: str) -> list[Any]:
        cache_key = SCOPES[scope][0]
        return self.cache.get_or_load(cache_key, lambda: self._load(scope))

    def hazards(self) -> list[HazardCatalogEntry]:
        return self._cached("hazards")

    def multipliers(self) -> list[MultiplierRule]:
        return self._cached("multipliers")

    def strategies(self) -> list[Strategy]:
        return self._cached("strategies")

    def business_types(self) -> list[BusinessType]:
        return self._cached("business_types")

    def locations(self) -> list[Location]:
        return self._cached("locations")

    def business_type(self, business_type_id: Optional[str]) -> Optional[BusinessType]:
        if not business_type_id:
            return None
        for business_type in self.business_types():
            if business_type.business_type_id == business_type_id:
                return business_type
        logger.warning("Unknown business type '%s'; using no characteristics", business_type_id)
        return None

    def location(self, location_id: Optional[str]) -> Optional[Location]:
        if not location_id:
            return None
        for location in self.locations():
            if location.location_id == location_id:
                return location
        logger.warning("Unknown location '%s'; using no location data", location_id)
        return None

    # ── Risk computation ──

    def _base_level(
        self,
        hazard_id: str,
        catalog: dict[str, HazardCatalogEntry],
        business_type: Optional[BusinessType],
        location: Optional[Location],
    ) -> tuple[float, str]:
        # Stored levels are not bounded by the schema; the caller clamps
        if location is not None and hazard_id in location.hazard_levels:
            return location.hazard_levels[hazard_id], "location"
        if business_type is not None and hazard_id in business_type.hazard_levels:
            return business_type.hazard_levels[hazard_id], "business_type"
        entry = catalog.get(hazard_id)
        if entry is not None and entry.default_level is not None:
            return entry.default_level, "catalog"
        return self.unknown_floor, "default"

    def compute_risks(
        self,
        hazard_ids: Iterable[str],
        business_type_id: Optional[str] = None,
        location_id: Optional[str] = None,
        characteristics: Optional[dict[str, Any]] = None,
    ) -> list[RiskCalculationResult]:
        """Compute one adjusted risk level per distinct canonical hazard.

        Args:
            hazard_ids: Hazard identifiers in any spelling; repeats and
                alternate spellings of one hazard collapse to a single result.
            business_type_id: Business type whose characteristics drive the
                multipliers. Unknown ids contribute no characteristics.
            location_id: Location supplying hazard levels and location facts.
            characteristics: Extra characteristics (e.g. converted plan answers)
                laid over the business-type and location values.

        Returns:
            Results in first-occurrence order of the distinct canonical ids.

        Raises:
            StoreUnavailableError: If a required collection cannot be read.
        """
        canonical_ids = canonicalize_all(hazard_ids)
        if not canonical_ids:
            return []

        catalog = {entry.hazard_id: entry for entry in self.hazards()}
        business_type = self.business_type(business_type_id)
        location = self.location(location_id)
        merged = characteristics_for(business_type, location)
        merged.update(characteristics or {})
        multipliers = MultiplierEngine(self.multipliers(), self.scale_min, self.scale_max)

        results = []
        for hazard_id in canonical_ids:
            raw_base, source = self._base_level(hazard_id, catalog, business_type, location)
            base = multipliers.clamp(raw_base)
            if base != raw_base:
                logger.warning(
                    "%s level %.1f for '%s' outside scale %g-%g; clamped to %.1f",
                    source, raw_base, hazard_id, self.scale_min, self.scale_max, base,
                )
            outcome = multipliers.apply_multipliers(hazard_id, base, merged)
            entry = catalog.get(hazard_id)
            known = entry is not None

            reasoning = []
            if known:
                reasoning.append(f"Base level {format_level(base)} from {source}")
            else:
                logger.warning("Hazard '%s' not in catalog; base level %.1f", hazard_id, base)
                reasoning.append(
                    f"Hazard not in catalog; base level {format_level(base)} from {source}"
                )
            reasoning.extend(outcome.rationale)

            adjusted = round_level(outcome.level)
            results.append(RiskCalculationResult(
                hazard_id=hazard_id,
                hazard_name=entry.display_name() if known else display_name(hazard_id),
                base_level=round_level(base),
                adjusted_level=adjusted,
                rating=level_to_rating(adjusted),
                reasoning=reasoning,
                applied_multipliers=outcome.applied,
                is_known_hazard=known,
                data_source=source,
            ))

        logger.info(
            "Computed %d risk(s) for business_type=%s location=%s",
            len(results), business_type_id, location_id,
        )
        return results

    # ── Recommendations ──

    def recommend_strategies(
        self,
        risk_results: Iterable[Union[RiskCalculationResult, str]],
        *,
        business_type_id: Optional[str] = None,
        order: str = "id",
    ) -> TierSelection:
        """Match strategies to computed risks and split them by tier.

        Results below ``recommendation.min_level`` are ignored. Plain hazard
        id strings are accepted in place of results and always count.
        """
        hazard_ids = []
        for item in risk_results:
            if isinstance(item, RiskCalculationResult):
                if item.adjusted_level >= self.min_level:
                    hazard_ids.append(item.hazard_id)
            else:
                hazard_ids.append(item)

        matched = match_strategies(
            self.strategies(),
            hazard_ids,
            order=order,
            business_type_id=business_type_id,
        )
        selection = select_defaults(
            matched,
            auto_tiers=self.auto_select_tiers,
            min_auto_selected=self.min_auto_selected,
        )
        logger.info(
            "Recommended %d strategies (%d auto-selected) for %d hazard(s)",
            len(matched), len(selection.auto_selected), len(hazard_ids),
        )
        return selection

    # ── Cache maintenance ──

    def invalidate(self, prefix: Optional[str] = None) -> int:
        """Drop cache entries (all, or those under ``prefix``)."""
        return self.cache.invalidate(prefix)

    def notify_write(self, collection: str) -> int:
        """Invalidate the cache scope fed by ``collection`` after an admin write.

        Unknown collections clear the whole cache.
        """
        scope = COLLECTION_SCOPES.get(collection)
        if scope is None:
            logger.warning("Write to unmapped collection '%s'; clearing whole cache", collection)
            return self.invalidate()
        return self.invalidate(f"{scope}:")

    def refresh_cache(self, scope: Optional[str] = None) -> int:
        """Invalidate ``scope`` (or everything) and reload it from the store.

        Returns:
            Number of records reloaded.

        Raises:
            ValueError: If ``scope`` is not a known cache scope.
            StoreUnavailableError: If the store cannot be read.
        """
        if scope is not None and scope not in SCOPES:
            raise ValueError(f"Unknown cache scope '{scope}'. Known: {sorted(SCOPES)}")

        scopes = [scope] if scope else list(SCOPES)
        self.invalidate(f"{scope}:" if scope else None)

        total = 0
        for name in scopes:
            total += len(self._cached(name))
        logger.info("Cache refreshed for %s: %d records", scope or "all scopes", total)
        return total
