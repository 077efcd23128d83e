"""Tests for centralized path constants and helper functions.

Verifies the path constants point to the expected locations, that every
store collection has a backing file under data/, and that collection_path
honours an explicit data directory.
"""

from pathlib import Path

import pytest

from src.paths import (
    CONFIG_DIR,
    DATA_DIR,
    ENGINE_CONFIG_PATH,
    PROJECT_ROOT,
    collection_path,
)
from src.store.base import COLLECTION_KEYS


class TestPathConstants:

    def test_project_root_holds_src(self):
        assert (PROJECT_ROOT / "src" / "paths.py").is_file()

    def test_config_under_project_root(self):
        assert CONFIG_DIR.parent == PROJECT_ROOT
        assert ENGINE_CONFIG_PATH.parent == CONFIG_DIR
        assert ENGINE_CONFIG_PATH.name == "engine_config.json"

    def test_data_dir_under_project_root(self):
        assert isinstance(DATA_DIR, Path)
        assert DATA_DIR.parent == PROJECT_ROOT


class TestCollectionPath:

    @pytest.mark.parametrize("collection", sorted(COLLECTION_KEYS))
    def test_default_dir(self, collection):
        path = collection_path(collection)
        assert path.parent == DATA_DIR
        assert path.name == f"{collection}.json"

    def test_every_collection_ships_a_file(self):
        for collection in COLLECTION_KEYS:
            assert collection_path(collection).is_file(), collection

    def test_explicit_data_dir(self, tmp_path):
        assert collection_path("hazards", tmp_path) == tmp_path / "hazards.json"
