#!/usr/bin/env python3
"""
Base classes for key-pair analyzers.

Provides common interface and result structures for metrics derived from
the bigram frequency table.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Mapping, Optional
import time

REPORT_PRECISION = Decimal('0.01')


def round_half_up(value: float) -> float:
    """
    Round to two decimal places, halves rounded up.

    Goes through the shortest repr of the float so that values such as
    1.005 round to 1.01 rather than the binary-float result.
    """
    return float(Decimal(repr(float(value))).quantize(REPORT_PRECISION, rounding=ROUND_HALF_UP))


@dataclass
class AnalysisResult:
    """
    Standardized result container for key-pair analysis.

    An analyzer that cannot compute its metric (e.g., because a required
    table has not loaded) returns a result with available=False and no
    components, which is distinct from a computed zero.
    """

    primary_value: Optional[float]
    """Headline metric (e.g., alternation rate); None when unavailable"""

    components: Dict[str, float] = field(default_factory=dict)
    """Individual reported numbers, keyed by their export names"""

    analyzer_name: str = ""

    available: bool = True

    metadata: Dict[str, Any] = field(default_factory=dict)
    """Additional analyzer-specific information"""

    execution_time: float = 0.0

    @classmethod
    def unavailable(cls, reason: str = "") -> 'AnalysisResult':
        return cls(primary_value=None, available=False, metadata={'reason': reason} if reason else {})

    def get_value(self, component_name: Optional[str] = None) -> Optional[float]:
        """
        Get a specific component or the primary value.

        Raises:
            KeyError: If component_name not found in components
        """
        if component_name is None:
            return self.primary_value

        if component_name not in self.components:
            available = list(self.components.keys())
            raise KeyError(f"Component '{component_name}' not found. Available: {available}")

        return self.components[component_name]

    def to_dict(self) -> Dict[str, Any]:
        """Export form: the components, or {'available': False} when unavailable."""
        if not self.available:
            return {'available': False}
        return dict(self.components)

    def summary(self) -> str:
        """Human-readable summary."""
        if not self.available:
            return f"Analyzer: {self.analyzer_name}\nUnavailable"

        summary_lines = [
            f"Analyzer: {self.analyzer_name}",
            f"Primary value: {self.primary_value:.2f}",
        ]

        if self.components:
            summary_lines.append("Components:")
            for name, value in self.components.items():
                summary_lines.append(f"  {name}: {value}")

        return "\n".join(summary_lines)


class BaseBigramAnalyzer(ABC):
    """
    Abstract base class for metrics computed from a bigram frequency table.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.analyzer_name = self.__class__.__name__.lower().replace('analyzer', '_analyzer')

    def is_available(self) -> bool:
        """Whether the analyzer has everything it needs to compute."""
        return True

    @abstractmethod
    def calculate(self, pair_stats: Mapping[str, int]) -> AnalysisResult:
        """
        Calculate the metric for a bigram table.

        Args:
            pair_stats: Mapping of 'K1-K2' to count

        Returns:
            AnalysisResult with rounded components
        """
        pass

    def analyze(self, pair_stats: Mapping[str, int]) -> AnalysisResult:
        """
        Main entry point: computes the metric and attaches timing information.
        """
        start_time = time.time()

        if self.is_available():
            result = self.calculate(pair_stats)
        else:
            result = AnalysisResult.unavailable(f"{self.analyzer_name} data not loaded")

        result.execution_time = time.time() - start_time
        result.analyzer_name = self.analyzer_name

        return result
