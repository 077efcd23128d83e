"""Centralized path constants for the BCP Risk Engine.

Every file and directory path used by the engine is defined here as a
module-level constant. Source files import from this module instead of
constructing ad-hoc ``Path(...)`` literals scattered throughout the codebase.

Design rules:
  1. This module imports ONLY ``pathlib.Path`` -- no project imports, no
     config imports, no runtime validation.  This prevents circular-import
     chains and keeps the module importable at any point.
  2. Constants are grouped by purpose (config, data collections).
  3. A helper function maps a store collection name to its JSON file.
  4. No path existence checks at import time.
"""

from pathlib import Path

# ---------------------------------------------------------------------------
# -- Project Root --
# ---------------------------------------------------------------------------

PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent
"""Absolute path to the project root directory (one level above ``src/``)."""

# ---------------------------------------------------------------------------
# -- Config Paths --
# ---------------------------------------------------------------------------

CONFIG_DIR: Path = PROJECT_ROOT / "config"
"""Directory containing engine configuration files."""

ENGINE_CONFIG_PATH: Path = CONFIG_DIR / "engine_config.json"
"""Main engine configuration (risk scale, cache TTL, tier selection)."""

# ---------------------------------------------------------------------------
# -- Data Paths (store collections) --
# ---------------------------------------------------------------------------

DATA_DIR: Path = PROJECT_ROOT / "data"
"""Default directory of the JSON-file record store.

Holds one ``<collection>.json`` file per store collection (hazards,
multipliers, strategies, business_types, locations); see collection_path().
"""


# ---------------------------------------------------------------------------
# -- Helper Functions --
# ---------------------------------------------------------------------------

def collection_path(collection: str, data_dir: Path | None = None) -> Path:
    """Return the JSON file path backing a store collection."""
    return (data_dir or DATA_DIR) / f"{collection}.json"
