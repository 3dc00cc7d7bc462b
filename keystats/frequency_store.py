#!/usr/bin/env python3
"""
Cumulative key and key-pair frequency counters.

FrequencyStore holds the single-key and bigram tables, the max-frequency
tracker and the last-key cursor. StatisticsSnapshot is the serializable form
used for persistence, export and merge.
"""

import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from .data_utils import validate_counter_map
from .errors import MalformedInputError
from .key_utils import make_pair_key, split_pair_key

DEFAULT_MAX_FREQUENCY = 1


def now_ms() -> int:
    return int(time.time() * 1000)


def table_max(counts: Mapping[str, int]) -> int:
    """Maximum count of a table, or the default when it is empty."""
    return max(counts.values()) if counts else DEFAULT_MAX_FREQUENCY


@dataclass
class StatisticsSnapshot:
    """
    Serializable aggregate of the frequency tables.

    The dictionary form uses the persisted field names:
    stats, keyPairStats, maxFrequency, lastUpdate.
    """

    stats: Dict[str, int] = field(default_factory=dict)
    """Single-key counts"""

    key_pair_stats: Dict[str, int] = field(default_factory=dict)
    """Bigram counts keyed by 'K1-K2'"""

    max_frequency: int = DEFAULT_MAX_FREQUENCY

    last_update: int = 0
    """Epoch milliseconds"""

    @property
    def total_keys(self) -> int:
        return sum(self.stats.values())

    @property
    def total_key_pairs(self) -> int:
        return sum(self.key_pair_stats.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            'stats': dict(self.stats),
            'keyPairStats': dict(self.key_pair_stats),
            'maxFrequency': self.max_frequency,
            'lastUpdate': self.last_update,
        }

    @classmethod
    def from_dict(cls, data: Any) -> 'StatisticsSnapshot':
        """
        Build a validated snapshot from persisted or imported data.

        'stats' is required and must be an object of counts. 'keyPairStats'
        is optional but must be an object of counts with parseable pair keys
        when present. Other fields are optional; maxFrequency is recomputed
        from the key table rather than trusted.

        Raises:
            MalformedInputError: If the data does not have the expected shape
        """
        if not isinstance(data, dict):
            raise MalformedInputError(f"Snapshot must be an object, got {type(data).__name__}")

        if 'stats' not in data:
            raise MalformedInputError("Snapshot is missing the 'stats' key counter map")

        stats = data['stats']
        issues = validate_counter_map(stats, 'stats')

        pair_stats = data.get('keyPairStats')
        if pair_stats is None:
            pair_stats = {}
        else:
            issues.extend(validate_counter_map(pair_stats, 'keyPairStats'))
            if isinstance(pair_stats, dict):
                bad_pairs = [k for k in pair_stats if split_pair_key(k) is None]
                if bad_pairs:
                    issues.append(f"keyPairStats has invalid pair keys: {bad_pairs[:5]}")

        if issues:
            raise MalformedInputError("; ".join(issues))

        last_update = data.get('lastUpdate', 0)
        if not isinstance(last_update, (int, float)) or isinstance(last_update, bool):
            last_update = 0

        stats = {k: int(v) for k, v in stats.items()}
        return cls(
            stats=stats,
            key_pair_stats={k: int(v) for k, v in pair_stats.items()},
            max_frequency=table_max(stats),
            last_update=int(last_update),
        )


class FrequencyStore:
    """
    Cumulative, mergeable counters for single keys and bigrams.

    A bigram is recorded only when a predecessor key exists in the same
    logical sequence; reset_sequence_boundary() starts a new sequence.
    """

    def __init__(self):
        self._stats: Dict[str, int] = {}
        self._pair_stats: Dict[str, int] = {}
        self._max_frequency = DEFAULT_MAX_FREQUENCY
        self._last_key: Optional[str] = None

    @classmethod
    def from_snapshot(cls, snapshot: StatisticsSnapshot) -> 'FrequencyStore':
        """Hydrate a store from persisted state; max-frequency is recomputed."""
        store = cls()
        store._stats = dict(snapshot.stats)
        store._pair_stats = dict(snapshot.key_pair_stats)
        store._max_frequency = table_max(store._stats)
        return store

    @property
    def key_stats(self) -> Mapping[str, int]:
        return MappingProxyType(self._stats)

    @property
    def key_pair_stats(self) -> Mapping[str, int]:
        return MappingProxyType(self._pair_stats)

    @property
    def max_frequency(self) -> int:
        return self._max_frequency

    @property
    def last_key(self) -> Optional[str]:
        return self._last_key

    @property
    def total_keys(self) -> int:
        return sum(self._stats.values())

    @property
    def total_key_pairs(self) -> int:
        return sum(self._pair_stats.values())

    def record(self, key: str) -> None:
        """Count one canonical key and, when a predecessor exists, the bigram ending in it."""
        count = self._stats.get(key, 0) + 1
        self._stats[key] = count

        if self._last_key is not None:
            pair = make_pair_key(self._last_key, key)
            self._pair_stats[pair] = self._pair_stats.get(pair, 0) + 1

        self._last_key = key
        self._max_frequency = max(self._max_frequency, count)

    def reset_sequence_boundary(self) -> None:
        """Start a new sequence so the next key is not paired with the previous one."""
        self._last_key = None

    def reset(self) -> None:
        self._stats = {}
        self._pair_stats = {}
        self._max_frequency = DEFAULT_MAX_FREQUENCY
        self._last_key = None

    def merge(self, snapshot: StatisticsSnapshot) -> None:
        """
        Add an independently collected snapshot to the local counters.

        The merge is always additive. Max-frequency is recomputed over the
        merged key table, never combined from the two inputs' own fields.
        The bigram spanning two separately recorded streams is not
        reconstructed.
        """
        for key, count in snapshot.stats.items():
            self._stats[key] = self._stats.get(key, 0) + count

        for pair, count in snapshot.key_pair_stats.items():
            self._pair_stats[pair] = self._pair_stats.get(pair, 0) + count

        self._max_frequency = table_max(self._stats)

    def snapshot(self) -> StatisticsSnapshot:
        """Independent copy of the counters with the current timestamp."""
        return StatisticsSnapshot(
            stats=dict(self._stats),
            key_pair_stats=dict(self._pair_stats),
            max_frequency=self._max_frequency,
            last_update=now_ms(),
        )
