"""Tests for the Persistence Store."""

import json
import logging

import pytest

from restock_kernel.models.resource import (
    Coordinates,
    Instance,
    Positional,
    TrackedResourceState,
)
from restock_kernel.persistence.store import (
    PersistenceLoadError,
    PersistenceSaveError,
    PersistenceStore,
)


def _make_entries():
    chest = TrackedResourceState(
        partition_id="overworld",
        locator=Positional(coordinates=Coordinates(x=10, y=64, z=-3)),
        template_ref="chests/simple_dungeon",
        seed=42,
        last_interaction_time=1_700_000_000_000,
        observed_empty=True,
        dirty=True,
    )
    cart = TrackedResourceState(
        partition_id="overworld",
        locator=Instance(instance_id="cart-9", last_known=Coordinates(x=-5, y=30, z=12)),
        template_ref="chests/abandoned_mineshaft",
        seed=-9_000_000_000_000_000_000,
        last_interaction_time=1_700_000_050_000,
    )
    return {chest.key: chest, cart.key: cart}


class TestPersistenceStore:
    def test_absent_file_loads_empty(self, tmp_path):
        store = PersistenceStore(tmp_path / "state.json")
        assert store.load() == {}
        assert not store.exists()

    def test_save_creates_directory_and_readable_json(self, tmp_path):
        store = PersistenceStore(tmp_path / "world" / "data" / "state.json")
        store.save(_make_entries())

        document = json.loads(store.path.read_text())
        assert set(document) == {
            "overworld:10,64,-3",
            "overworld:entity:cart-9",
        }
        chest = document["overworld:10,64,-3"]
        assert chest == {
            "partitionId": "overworld",
            "x": 10,
            "y": 64,
            "z": -3,
            "entityId": None,
            "templateRef": "chests/simple_dungeon",
            "seed": 42,
            "lastInteractionTime": 1_700_000_000_000,
            "observedEmpty": True,
        }
        assert document["overworld:entity:cart-9"]["entityId"] == "cart-9"
        assert "dirty" not in chest

    def test_round_trip(self, tmp_path):
        store = PersistenceStore(tmp_path / "state.json")
        entries = _make_entries()
        store.save(entries)

        loaded = store.load()
        assert set(loaded) == set(entries)
        for key, state in entries.items():
            assert loaded[key].model_dump() == state.model_dump()
            assert loaded[key].dirty is False

    def test_save_of_load_is_stable(self, tmp_path):
        store = PersistenceStore(tmp_path / "state.json")
        store.save(_make_entries())
        first = store.path.read_text()

        store.save(store.load())
        assert store.path.read_text() == first

    def test_no_temp_file_left_behind(self, tmp_path):
        store = PersistenceStore(tmp_path / "state.json")
        store.save(_make_entries())
        assert not store.temp_path.exists()

    def test_keys_rebuilt_from_record_fields(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text(json.dumps({
            "stale-key": {
                "partitionId": "overworld",
                "x": 1, "y": 2, "z": 3,
                "templateRef": "chests/igloo",
                "seed": 5,
                "lastInteractionTime": 10,
            }
        }))
        loaded = PersistenceStore(path).load()
        (key,) = loaded
        assert key.storage_key() == "overworld:1,2,3"
        assert loaded[key].observed_empty is False

    @pytest.mark.parametrize(
        "content",
        [
            b"{not json",
            b"",
            b"null",
            b"[]",
            b'{"k": {"partitionId": "overworld"}}',
            b'{"k": {"partitionId": "w", "x": 1, "y": 2, "z": 3, "templateRef": "",'
            b' "seed": 1, "lastInteractionTime": 0}}',
            b'{"a": "\xff\xfe"}',
            b"\xff\xfe\x00garbage",
        ],
    )
    def test_malformed_file_loads_empty(self, tmp_path, caplog, content):
        path = tmp_path / "state.json"
        path.write_bytes(content)
        store = PersistenceStore(path)

        with pytest.raises(PersistenceLoadError):
            store.read()

        with caplog.at_level(logging.WARNING, logger="restock_kernel"):
            assert store.load() == {}
        assert "Discarding tracked state" in caplog.text

    def test_save_failure_raises(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file where a directory should be")
        store = PersistenceStore(blocker / "state.json")

        with pytest.raises(PersistenceSaveError):
            store.save(_make_entries())
