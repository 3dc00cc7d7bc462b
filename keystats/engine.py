#!/usr/bin/env python3
"""
Statistics engine for keystroke ergonomics.

The only interface the host application uses: record keystrokes, request
metrics, export and import snapshots, and reset. Persistence and the
equivalence table are injected collaborators, so the engine runs headless.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from .analyzer_factory import AnalyzerFactory
from .base_analyzer import AnalysisResult, BaseBigramAnalyzer
from .equivalence_table import EquivalenceTable
from .errors import MalformedInputError, PersistenceError
from .frequency_store import FrequencyStore, StatisticsSnapshot
from .key_utils import KeyNormalizer
from .storage import MemoryStorage, StatsStorage

logger = logging.getLogger(__name__)

SCHEMA_VERSION = '1.0'
DEFAULT_DESCRIPTION = 'Key statistics (hand alternation and equivalent analysis)'

REFRESH_KEYSTROKE = 'keystroke'
REFRESH_IMPORT = 'import'
REFRESH_RESET = 'reset'
REFRESH_EQUIVALENCE_LOADED = 'equivalence_loaded'

RefreshListener = Callable[[str], None]


@dataclass
class ImportResult:
    """Tagged result of an import: success, or a validation error message."""

    ok: bool
    error: Optional[str] = None
    keys_imported: int = 0
    pairs_imported: int = 0

    @classmethod
    def success(cls, snapshot: StatisticsSnapshot) -> 'ImportResult':
        return cls(ok=True, keys_imported=snapshot.total_keys, pairs_imported=snapshot.total_key_pairs)

    @classmethod
    def failure(cls, error: str) -> 'ImportResult':
        return cls(ok=False, error=error)


@dataclass
class EngineMetrics:
    """Current metrics as returned by StatisticsEngine.get_metrics()."""

    key_stats: Dict[str, int]
    max_frequency: int
    total_keys: int
    total_key_pairs: int
    hand_alternation: AnalysisResult
    equivalent: AnalysisResult

    @property
    def equivalent_available(self) -> bool:
        return self.equivalent.available

    def to_dict(self) -> Dict[str, Any]:
        equivalent = self.equivalent.to_dict()
        if self.equivalent.available:
            equivalent['available'] = True
        return {
            'stats': dict(self.key_stats),
            'maxFrequency': self.max_frequency,
            'totalKeys': self.total_keys,
            'totalKeyPairs': self.total_key_pairs,
            'handAlternationStats': self.hand_alternation.to_dict(),
            'equivalentStats': equivalent,
        }


class StatisticsEngine:
    """
    Orchestrates normalization, counting, persistence and analysis.

    Keystrokes are processed synchronously; the equivalence table loads
    asynchronously and triggers a single refresh notification on success.
    """

    def __init__(self,
                 storage: Optional[StatsStorage] = None,
                 equivalence_table: Optional[EquivalenceTable] = None,
                 config: Optional[Dict[str, Any]] = None):
        """
        Initialize the engine and hydrate it from storage.

        Args:
            storage: Persistence backend (in-memory if None)
            equivalence_table: Cost table, loaded or not (empty if None)
            config: Engine configuration ('export' settings, analyzer options)
        """
        self.config = config or {}
        self.storage = storage if storage is not None else MemoryStorage()
        self.equivalence_table = equivalence_table if equivalence_table is not None else EquivalenceTable()
        self.normalizer = KeyNormalizer()
        self.last_persistence_error: Optional[OSError] = None

        self._listeners: List[RefreshListener] = []
        self._analyzers: Dict[str, BaseBigramAnalyzer] = {}
        for name in AnalyzerFactory.get_available_analyzers():
            self._analyzers[name] = AnalyzerFactory.create_analyzer(
                name, self.config.get('analyzer_options', {}).get(name), table=self.equivalence_table
            )

        self.store = self._hydrate()
        self.equivalence_table.subscribe(self._on_equivalence_loaded)

    def _hydrate(self) -> FrequencyStore:
        try:
            data = self.storage.load()
        except PersistenceError as e:
            logger.warning("Could not read persisted statistics, starting empty: %s", e)
            return FrequencyStore()

        if data is None:
            return FrequencyStore()

        try:
            snapshot = StatisticsSnapshot.from_dict(data)
        except MalformedInputError as e:
            logger.warning("Ignoring malformed persisted statistics: %s", e)
            return FrequencyStore()

        logger.debug("Hydrated %d keys and %d key pairs", snapshot.total_keys, snapshot.total_key_pairs)
        return FrequencyStore.from_snapshot(snapshot)

    # Notifications

    def subscribe(self, callback: RefreshListener) -> None:
        """Register a callback receiving the reason for each metrics refresh."""
        if callback not in self._listeners:
            self._listeners.append(callback)

    def unsubscribe(self, callback: RefreshListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self, reason: str) -> None:
        for callback in list(self._listeners):
            try:
                callback(reason)
            except Exception:
                logger.exception("Metrics refresh listener failed (%s)", reason)

    def _on_equivalence_loaded(self, table: EquivalenceTable) -> None:
        self._notify(REFRESH_EQUIVALENCE_LOADED)

    async def load_equivalence_table(self) -> bool:
        """Load the equivalence table; never raises."""
        return await self.equivalence_table.load()

    # Mutations

    def _persist(self) -> None:
        try:
            self.storage.save(self.store.snapshot().to_dict())
            self.last_persistence_error = None
        except OSError as e:
            self.last_persistence_error = e
            logger.warning("Could not persist key statistics (in-memory state kept): %s", e)

    def record_keystroke(self, raw_event: Any) -> Optional[str]:
        """
        Record one key-down event of the form {key, location?}.

        Returns:
            The canonical key recorded, or None if the event was dropped
        """
        key = self.normalizer.normalize(raw_event)
        if key is None:
            return None

        self.store.record(key)
        self._persist()
        self._notify(REFRESH_KEYSTROKE)
        return key

    def reset_sequence_boundary(self) -> None:
        """Mark the start of a new passage; the next key starts a new bigram chain."""
        self.store.reset_sequence_boundary()

    def reset(self) -> None:
        self.store.reset()
        self._persist()
        self._notify(REFRESH_RESET)

    def import_snapshot(self, bundle: Any) -> ImportResult:
        """
        Merge an exported bundle (or any subset holding 'stats') into the counters.

        Imports are additive: importing the same bundle twice doubles the counts.
        A malformed bundle is rejected without touching state.
        """
        try:
            snapshot = StatisticsSnapshot.from_dict(bundle)
        except MalformedInputError as e:
            logger.info("Rejected snapshot import: %s", e)
            return ImportResult.failure(str(e))

        self.store.merge(snapshot)
        self._persist()
        self._notify(REFRESH_IMPORT)
        return ImportResult.success(snapshot)

    # Queries

    def analyze(self, analyzer_name: str) -> AnalysisResult:
        if analyzer_name not in self._analyzers:
            raise ValueError(f"Analyzer '{analyzer_name}' not configured. Available: {list(self._analyzers)}")
        return self._analyzers[analyzer_name].analyze(self.store.key_pair_stats)

    def get_metrics(self) -> EngineMetrics:
        return EngineMetrics(
            key_stats=dict(self.store.key_stats),
            max_frequency=self.store.max_frequency,
            total_keys=self.store.total_keys,
            total_key_pairs=self.store.total_key_pairs,
            hand_alternation=self.analyze('alternation'),
            equivalent=self.analyze('equivalent'),
        )

    def export_snapshot(self) -> Dict[str, Any]:
        """Persisted fields plus computed statistics, totals, export time and schema version."""
        export_config = self.config.get('export', {})
        metrics = self.get_metrics()
        bundle = self.store.snapshot().to_dict()
        bundle.update({
            'handAlternationStats': metrics.hand_alternation.to_dict(),
            'equivalentStats': metrics.to_dict()['equivalentStats'],
            'totalKeys': metrics.total_keys,
            'totalKeyPairs': metrics.total_key_pairs,
            'exportTime': datetime.now(timezone.utc).isoformat(),
            'version': str(export_config.get('version', SCHEMA_VERSION)),
            'description': export_config.get('description', DEFAULT_DESCRIPTION),
        })
        return bundle

    def get_key_heatmap(self) -> Dict[str, Dict[str, float]]:
        """
        Per-key heatmap values.

        Returns:
            Dict mapping key to {'count', 'intensity', 'percentage'}, where
            intensity is count / max-frequency and percentage is the key's
            share of all keystrokes (one decimal place)
        """
        stats = self.store.key_stats
        if not stats:
            return {}

        keys = list(stats.keys())
        counts = np.array([stats[k] for k in keys], dtype=float)
        total = counts.sum()
        max_frequency = self.store.max_frequency

        intensities = counts / max_frequency if max_frequency > 0 else np.zeros_like(counts)
        percentages = np.round(counts / total * 100, 1) if total > 0 else np.zeros_like(counts)

        return {
            key: {
                'count': int(count),
                'intensity': float(intensity),
                'percentage': float(percentage),
            }
            for key, count, intensity, percentage in zip(keys, counts, intensities, percentages)
        }

    def get_basic_stats(self) -> Dict[str, str]:
        """Short display summary: totals, alternation rate and average equivalent."""
        metrics = self.get_metrics()
        if metrics.equivalent.available:
            average_equiv = f"{metrics.equivalent.get_value('averageEquiv'):.2f}"
        else:
            average_equiv = 'unavailable'
        return {
            'totalKeys': f"{metrics.total_keys:,}",
            'maxFrequency': f"{metrics.max_frequency:,}",
            'alternationRate': f"{metrics.hand_alternation.get_value('rate')}%",
            'averageEquiv': average_equiv,
        }
