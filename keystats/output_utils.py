#!/usr/bin/env python3
"""
Output utilities for keystroke statistics.

Common functions for formatting and displaying engine metrics in various
formats, and for writing export bundles.
"""

import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from .engine import EngineMetrics

OUTPUT_FORMATS = ['detailed', 'csv', 'score_only']
UNAVAILABLE = 'unavailable'

# Column order for CSV output
ALTERNATION_COLUMNS = ['total', 'alternating', 'sameHand', 'leftToRight', 'rightToLeft', 'rate']
EQUIVALENT_COLUMNS = ['totalValidPairs', 'totalWeightedEquiv', 'averageEquiv']


def create_key_table(key_stats: Dict[str, int], max_frequency: int,
                     top_n: Optional[int] = None) -> pd.DataFrame:
    """
    Build a key frequency table sorted by count.

    Args:
        key_stats: Mapping of canonical key to count
        max_frequency: Current max-frequency (for heatmap intensity)
        top_n: Keep only the N most frequent keys (all if None)

    Returns:
        DataFrame with columns key, count, percentage, intensity
    """
    if not key_stats:
        return pd.DataFrame(columns=['key', 'count', 'percentage', 'intensity'])

    df = pd.DataFrame(sorted(key_stats.items()), columns=['key', 'count'])
    total = df['count'].sum()
    df['percentage'] = (df['count'] / total * 100).round(1) if total > 0 else 0.0
    df['intensity'] = df['count'] / max_frequency if max_frequency > 0 else 0.0
    df = df.sort_values(['count', 'key'], ascending=[False, True]).reset_index(drop=True)

    if top_n is not None:
        df = df.head(top_n)

    return df


def create_pair_table(key_pair_stats: Dict[str, int], top_n: Optional[int] = None) -> pd.DataFrame:
    """Build a key-pair frequency table sorted by count."""
    if not key_pair_stats:
        return pd.DataFrame(columns=['key_pair', 'count'])

    df = pd.DataFrame(sorted(key_pair_stats.items()), columns=['key_pair', 'count'])
    df = df.sort_values(['count', 'key_pair'], ascending=[False, True]).reset_index(drop=True)

    if top_n is not None:
        df = df.head(top_n)

    return df


def _format_value(value: Any, precision: int) -> str:
    if isinstance(value, float):
        return f"{value:.{precision}f}"
    return str(value)


def format_csv_output(metrics: EngineMetrics,
                      config: Optional[Dict[str, Any]] = None) -> str:
    """
    Format metrics as CSV output (one header row, one data row).

    Args:
        metrics: EngineMetrics to format
        config: Output format configuration

    Returns:
        CSV formatted string
    """
    if config is None:
        config = {}

    delimiter = config.get('delimiter', ',')
    precision = config.get('precision', 2)
    include_headers = config.get('include_headers', True)

    headers = ['total_keys', 'total_key_pairs', 'max_frequency']
    values = [str(metrics.total_keys), str(metrics.total_key_pairs), str(metrics.max_frequency)]

    for column in ALTERNATION_COLUMNS:
        headers.append(f'alternation_{column}')
        values.append(_format_value(metrics.hand_alternation.components.get(column, 0.0), precision))

    headers.append('equivalent_available')
    values.append(str(metrics.equivalent.available))
    for column in EQUIVALENT_COLUMNS:
        headers.append(f'equivalent_{column}')
        if metrics.equivalent.available:
            values.append(_format_value(metrics.equivalent.components[column], precision))
        else:
            values.append('')

    lines = []
    if include_headers:
        lines.append(delimiter.join(headers))
    lines.append(delimiter.join(values))

    return '\n'.join(lines)


def format_score_only_output(metrics: EngineMetrics,
                             config: Optional[Dict[str, Any]] = None) -> str:
    """
    Format metrics compactly: alternation rate and average equivalent.

    The average equivalent is written as 'unavailable' until the
    equivalence table has loaded.
    """
    if config is None:
        config = {}

    precision = config.get('precision', 2)
    separator = config.get('separator', ' ')

    scores = [f"{metrics.hand_alternation.primary_value:.{precision}f}"]
    if metrics.equivalent.available:
        scores.append(f"{metrics.equivalent.primary_value:.{precision}f}")
    else:
        scores.append(UNAVAILABLE)

    return separator.join(scores)


def format_detailed_output(metrics: EngineMetrics,
                           config: Optional[Dict[str, Any]] = None) -> str:
    """
    Format metrics as detailed human-readable output.

    Args:
        metrics: EngineMetrics to format
        config: Output format configuration ('top_keys', 'top_pairs')

    Returns:
        Formatted detailed output string
    """
    if config is None:
        config = {}

    top_keys = config.get('top_keys', 10)
    top_pairs = config.get('top_pairs', 0)

    lines = []
    lines.append("Key statistics")
    lines.append("=" * 50)
    lines.append(f"  {'Total keys':<28}: {metrics.total_keys:,}")
    lines.append(f"  {'Total key pairs':<28}: {metrics.total_key_pairs:,}")
    lines.append(f"  {'Max frequency':<28}: {metrics.max_frequency:,}")

    alternation = metrics.hand_alternation.components
    lines.append("\nHand alternation:")
    lines.append(f"  {'Alternation rate':<28}: {alternation.get('rate', 0.0):.2f}%")
    lines.append(f"  {'Alternating pairs':<28}: {alternation.get('alternating', 0.0):,.2f}")
    lines.append(f"  {'Same-hand pairs':<28}: {alternation.get('sameHand', 0.0):,.2f}")
    lines.append(f"  {'Left to right':<28}: {alternation.get('leftToRight', 0.0):,.2f}")
    lines.append(f"  {'Right to left':<28}: {alternation.get('rightToLeft', 0.0):,.2f}")

    lines.append("\nEquivalent:")
    if metrics.equivalent.available:
        equivalent = metrics.equivalent.components
        lines.append(f"  {'Average equivalent':<28}: {equivalent['averageEquiv']:.2f}")
        lines.append(f"  {'Valid key pairs':<28}: {equivalent['totalValidPairs']:,}")
    else:
        lines.append(f"  {'Average equivalent':<28}: {UNAVAILABLE}")

    if top_keys and metrics.key_stats:
        table = create_key_table(metrics.key_stats, metrics.max_frequency, top_n=top_keys)
        lines.append(f"\nTop {len(table)} keys:")
        for _, row in table.iterrows():
            lines.append(f"  {row['key']:<10} {int(row['count']):>8,}  {row['percentage']:5.1f}%")

    if top_pairs and metrics.key_pair_stats:
        table = create_pair_table(metrics.key_pair_stats, top_n=top_pairs)
        lines.append(f"\nTop {len(table)} key pairs:")
        for _, row in table.iterrows():
            lines.append(f"  {row['key_pair']:<16} {int(row['count']):>8,}")

    return '\n'.join(lines)


def format_metrics(metrics: EngineMetrics,
                   output_format: str = "detailed",
                   config: Optional[Dict[str, Any]] = None) -> str:
    """
    Format metrics in the specified format.

    Raises:
        ValueError: If output_format is unknown
    """
    if output_format == "csv":
        return format_csv_output(metrics, config)
    elif output_format == "score_only":
        return format_score_only_output(metrics, config)
    elif output_format == "detailed":
        return format_detailed_output(metrics, config)
    raise ValueError(f"Unknown output format: {output_format}")


def print_results(metrics: EngineMetrics,
                  output_format: str = "detailed",
                  config: Optional[Dict[str, Any]] = None,
                  file=None) -> None:
    """
    Print metrics in the specified format.

    Args:
        metrics: EngineMetrics to print
        output_format: Format type ('detailed', 'csv', 'score_only')
        config: Output format configuration
        file: File object to write to (defaults to stdout)
    """
    if file is None:
        file = sys.stdout

    print(format_metrics(metrics, output_format, config), file=file)


def save_results_to_file(metrics: EngineMetrics,
                         filepath: str,
                         output_format: str = "csv",
                         config: Optional[Dict[str, Any]] = None) -> None:
    """Save formatted metrics to a file."""
    content = format_metrics(metrics, output_format, config)

    with open(filepath, 'w', encoding='utf-8') as f:
        f.write(content)
        f.write('\n')


def build_export_filename(prefix: str = "keystats",
                          scheme_name: str = "",
                          user_name: str = "",
                          now: Optional[datetime] = None) -> str:
    """
    Build an export file name: <prefix>[-<scheme>][-<user>]-YYYYMMDD-HHMMSS.json

    Empty scheme or user names are left out.
    """
    now = now or datetime.now()
    parts: List[str] = [prefix]
    for part in (scheme_name.strip(), user_name.strip()):
        if part:
            parts.append(part)
    parts.append(now.strftime('%Y%m%d'))
    parts.append(now.strftime('%H%M%S'))
    return '-'.join(parts) + '.json'


def save_export_bundle(bundle: Dict[str, Any], filepath: str,
                       prefix: str = "keystats",
                       scheme_name: str = "",
                       user_name: str = "") -> Path:
    """
    Write an export bundle as indented JSON.

    If filepath is an existing directory, a file name is generated from
    prefix, scheme_name and user_name.

    Returns:
        Path of the written file
    """
    path = Path(filepath)
    if path.is_dir():
        path = path / build_export_filename(prefix, scheme_name, user_name)

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(bundle, f, indent=2, ensure_ascii=False)

    return path


def load_export_bundle(filepath: str) -> Any:
    """
    Read an export bundle (or any JSON document) for import.

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If the file is not valid JSON
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Snapshot file not found: {filepath}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Error parsing snapshot file {filepath}: {e}")
