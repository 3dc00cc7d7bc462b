# keystats/__init__.py
"""
Keystroke Ergonomics Statistics

Key and key-pair frequency tracking, hand alternation and equivalent
analysis for typing practice.
"""

__version__ = "1.0.0"

# Import main classes for easy access
from .engine import StatisticsEngine, EngineMetrics, ImportResult
from .equivalence_table import EquivalenceTable
from .base_analyzer import AnalysisResult
from .storage import JsonFileStorage, MemoryStorage
from .config_loader import ConfigLoader, load_config

__all__ = [
    'StatisticsEngine',
    'EngineMetrics',
    'ImportResult',
    'EquivalenceTable',
    'AnalysisResult',
    'JsonFileStorage',
    'MemoryStorage',
    'ConfigLoader',
    'load_config'
]
