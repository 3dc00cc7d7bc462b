#!/usr/bin/env python3
"""
Factory for creating analyzer instances.
"""

import importlib
from typing import Any, Dict, List, Optional

from .base_analyzer import BaseBigramAnalyzer
from .equivalence_table import EquivalenceTable


class AnalyzerFactory:
    """Factory for creating analyzer instances."""

    ANALYZERS = {
        'alternation': 'keystats.alternation_analyzer.AlternationAnalyzer',
        'equivalent': 'keystats.equivalent_analyzer.EquivalentAnalyzer',
    }

    # Analyzers that read the equivalence table
    TABLE_ANALYZERS = {'equivalent'}

    @classmethod
    def create_analyzer(cls, analyzer_name: str,
                        config: Optional[Dict[str, Any]] = None,
                        table: Optional[EquivalenceTable] = None) -> BaseBigramAnalyzer:
        """
        Create an analyzer instance.

        Args:
            analyzer_name: Name of analyzer ('alternation', 'equivalent')
            config: Configuration dictionary
            table: Equivalence table for analyzers that need one

        Returns:
            Configured analyzer instance

        Raises:
            ValueError: If analyzer_name is not recognized
        """
        if analyzer_name not in cls.ANALYZERS:
            available = list(cls.ANALYZERS.keys())
            raise ValueError(f"Unknown analyzer '{analyzer_name}'. Available: {available}")

        module_path, class_name = cls.ANALYZERS[analyzer_name].rsplit('.', 1)
        module = importlib.import_module(module_path)
        analyzer_class = getattr(module, class_name)

        if analyzer_name in cls.TABLE_ANALYZERS:
            return analyzer_class(config, table=table)
        return analyzer_class(config)

    @classmethod
    def get_available_analyzers(cls) -> List[str]:
        """Get list of available analyzer names."""
        return list(cls.ANALYZERS.keys())
