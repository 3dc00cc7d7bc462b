"""Tests for keystats.frequency_store – counters, snapshots and merging."""

from __future__ import annotations

import pytest

from keystats.errors import MalformedInputError
from keystats.frequency_store import FrequencyStore, StatisticsSnapshot


def record_all(store: FrequencyStore, keys) -> None:
    for key in keys:
        store.record(key)


# ---------------------------------------------------------------------------
# FrequencyStore recording
# ---------------------------------------------------------------------------

class TestRecord:
    def test_fresh_store(self):
        store = FrequencyStore()
        assert dict(store.key_stats) == {}
        assert dict(store.key_pair_stats) == {}
        assert store.max_frequency == 1
        assert store.last_key is None

    def test_first_key_has_no_pair(self):
        store = FrequencyStore()
        store.record("A")
        assert dict(store.key_stats) == {"A": 1}
        assert dict(store.key_pair_stats) == {}
        assert store.last_key == "A"

    def test_counts_keys_and_pairs(self):
        store = FrequencyStore()
        record_all(store, ["A", "B", "A"])
        assert dict(store.key_stats) == {"A": 2, "B": 1}
        assert dict(store.key_pair_stats) == {"A-B": 1, "B-A": 1}
        assert store.max_frequency == 2

    def test_repeated_key_pairs_with_itself(self):
        store = FrequencyStore()
        record_all(store, ["-", "-", "-"])
        assert dict(store.key_pair_stats) == {"---": 2}

    def test_max_frequency_tracks_table_max(self):
        store = FrequencyStore()
        record_all(store, ["A", "B", "B", "B", "A"])
        assert store.max_frequency == max(store.key_stats.values()) == 3

    def test_tables_are_read_only(self):
        store = FrequencyStore()
        store.record("A")
        with pytest.raises(TypeError):
            store.key_stats["A"] = 10


# ---------------------------------------------------------------------------
# sequence boundaries
# ---------------------------------------------------------------------------

class TestSequenceBoundary:
    def test_boundary_prevents_spanning_pair(self):
        store = FrequencyStore()
        store.record("A")
        store.reset_sequence_boundary()
        store.record("B")
        assert dict(store.key_pair_stats) == {}
        assert dict(store.key_stats) == {"A": 1, "B": 1}

    def test_pair_count_property(self):
        # 3 runs of lengths 4, 2 and 3
        store = FrequencyStore()
        runs = [["A", "S", "D", "F"], ["J", "K"], ["L", "Space", "A"]]
        for run in runs:
            store.reset_sequence_boundary()
            record_all(store, run)

        accepted = sum(len(run) for run in runs)
        assert store.total_keys == accepted
        assert store.total_key_pairs == accepted - len(runs)


# ---------------------------------------------------------------------------
# reset
# ---------------------------------------------------------------------------

class TestReset:
    def test_reset_clears_everything(self):
        store = FrequencyStore()
        record_all(store, ["A", "A", "B"])
        store.reset()
        assert dict(store.key_stats) == {}
        assert dict(store.key_pair_stats) == {}
        assert store.max_frequency == 1
        assert store.last_key is None

    def test_no_pair_after_reset(self):
        store = FrequencyStore()
        store.record("A")
        store.reset()
        store.record("B")
        assert dict(store.key_pair_stats) == {}


# ---------------------------------------------------------------------------
# merge
# ---------------------------------------------------------------------------

class TestMerge:
    def test_merge_is_additive(self):
        store = FrequencyStore()
        record_all(store, ["A", "B"])
        store.merge(StatisticsSnapshot(stats={"A": 2, "C": 1}, key_pair_stats={"A-B": 3}))
        assert dict(store.key_stats) == {"A": 3, "B": 1, "C": 1}
        assert dict(store.key_pair_stats) == {"A-B": 4}

    def test_merge_recomputes_max_frequency(self):
        store = FrequencyStore()
        record_all(store, ["A", "A"])
        store.merge(StatisticsSnapshot(stats={"B": 5}, max_frequency=1))
        assert store.max_frequency == 5

    def test_merge_twice_doubles(self):
        snapshot = StatisticsSnapshot(stats={"A": 2}, key_pair_stats={"A-A": 1})
        store = FrequencyStore()
        store.merge(snapshot)
        store.merge(snapshot)
        assert dict(store.key_stats) == {"A": 4}
        assert dict(store.key_pair_stats) == {"A-A": 2}

    def test_split_and_merge_loses_spanning_pair(self):
        whole = FrequencyStore()
        record_all(whole, ["A", "B", "C", "D"])

        first = FrequencyStore()
        record_all(first, ["A", "B"])
        second = FrequencyStore()
        record_all(second, ["C", "D"])
        first.merge(second.snapshot())

        assert dict(first.key_stats) == dict(whole.key_stats)
        assert first.total_key_pairs == whole.total_key_pairs - 1
        assert "B-C" in whole.key_pair_stats
        assert "B-C" not in first.key_pair_stats


# ---------------------------------------------------------------------------
# StatisticsSnapshot
# ---------------------------------------------------------------------------

class TestSnapshot:
    def test_snapshot_is_independent_copy(self):
        store = FrequencyStore()
        store.record("A")
        snapshot = store.snapshot()
        snapshot.stats["A"] = 100
        assert store.key_stats["A"] == 1

    def test_snapshot_has_timestamp(self):
        assert FrequencyStore().snapshot().last_update > 0

    def test_to_dict_field_names(self):
        snapshot = StatisticsSnapshot(stats={"A": 1}, key_pair_stats={}, max_frequency=1, last_update=5)
        assert snapshot.to_dict() == {
            "stats": {"A": 1},
            "keyPairStats": {},
            "maxFrequency": 1,
            "lastUpdate": 5,
        }

    def test_from_snapshot_recomputes_max(self):
        store = FrequencyStore.from_snapshot(StatisticsSnapshot(stats={"A": 7, "B": 2}, max_frequency=1))
        assert store.max_frequency == 7
        assert store.last_key is None


class TestSnapshotFromDict:
    def test_round_trip(self):
        data = {"stats": {"A": 2, "B": 1}, "keyPairStats": {"A-B": 1}, "maxFrequency": 2, "lastUpdate": 10}
        snapshot = StatisticsSnapshot.from_dict(data)
        assert snapshot.stats == {"A": 2, "B": 1}
        assert snapshot.key_pair_stats == {"A-B": 1}
        assert snapshot.last_update == 10

    def test_pair_stats_optional(self):
        snapshot = StatisticsSnapshot.from_dict({"stats": {"A": 1}})
        assert snapshot.key_pair_stats == {}

    def test_max_frequency_is_recomputed(self):
        snapshot = StatisticsSnapshot.from_dict({"stats": {"A": 3}, "maxFrequency": 99})
        assert snapshot.max_frequency == 3

    def test_empty_stats_max_is_one(self):
        assert StatisticsSnapshot.from_dict({"stats": {}}).max_frequency == 1

    def test_integral_floats_accepted(self):
        snapshot = StatisticsSnapshot.from_dict({"stats": {"A": 3.0}})
        assert snapshot.stats == {"A": 3}
        assert isinstance(snapshot.stats["A"], int)

    def test_invalid_last_update_defaults_to_zero(self):
        assert StatisticsSnapshot.from_dict({"stats": {}, "lastUpdate": "yesterday"}).last_update == 0

    @pytest.mark.parametrize("data", [
        None,
        [],
        "stats",
        {},
        {"keyPairStats": {}},
        {"stats": []},
        {"stats": {"A": -1}},
        {"stats": {"A": 1.5}},
        {"stats": {"A": "3"}},
        {"stats": {"A": True}},
        {"stats": {"A": float("inf")}},
        {"stats": {"A": 1}, "keyPairStats": []},
        {"stats": {"A": 1}, "keyPairStats": {"A-B": -2}},
        {"stats": {"A": 1}, "keyPairStats": {"AB": 1}},
    ])
    def test_malformed_rejected(self, data):
        with pytest.raises(MalformedInputError):
            StatisticsSnapshot.from_dict(data)

    def test_malformed_is_value_error(self):
        with pytest.raises(ValueError):
            StatisticsSnapshot.from_dict({"stats": "nope"})
