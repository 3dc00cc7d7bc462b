#!/usr/bin/env python3
"""
Equivalent (travel cost) analyzer.

Computes the frequency-weighted average equivalent of the recorded key
pairs using an EquivalenceTable. Pairs whose keys have no equivalence code
(anything other than letters, ';' and Space) or whose code is not in the
table are left out of both the weighted sum and the pair total.
"""

from typing import Any, Dict, Mapping, Optional

from .base_analyzer import AnalysisResult, BaseBigramAnalyzer, round_half_up
from .equivalence_table import EquivalenceTable
from .key_utils import pair_to_equivalence_code


class EquivalentAnalyzer(BaseBigramAnalyzer):
    """
    Weighted-average equivalent over the bigram table.

    Reports unavailable, not zero, until the equivalence table has loaded.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None,
                 table: Optional[EquivalenceTable] = None):
        super().__init__(config)
        self.table = table if table is not None else EquivalenceTable()

    def is_available(self) -> bool:
        return self.table.loaded

    def calculate(self, pair_stats: Mapping[str, int]) -> AnalysisResult:
        total_weighted = 0.0
        total_valid_pairs = 0
        unmapped_pairs = 0
        undefined_pairs = 0

        for pair, count in pair_stats.items():
            code = pair_to_equivalence_code(pair)
            if code is None:
                unmapped_pairs += count
                continue

            equiv = self.table.lookup(code)
            if equiv is None:
                undefined_pairs += count
                continue

            total_weighted += equiv * count
            total_valid_pairs += count

        average = total_weighted / total_valid_pairs if total_valid_pairs > 0 else 0.0

        components = {
            'totalValidPairs': total_valid_pairs,
            'totalWeightedEquiv': round_half_up(total_weighted),
            'averageEquiv': round_half_up(average),
        }

        return AnalysisResult(
            primary_value=components['averageEquiv'],
            components=components,
            metadata={
                'unmapped_pairs': unmapped_pairs,
                'undefined_pairs': undefined_pairs,
                'table_size': len(self.table),
            },
        )

