#!/usr/bin/env python3
"""
Data utilities for keystroke statistics.

Common functions for loading and validating equivalence tables and
counter maps.
"""

import json
import math
import logging
import numbers
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

logger = logging.getLogger(__name__)

EQUIVALENCE_PAIR_COLUMN = 'key_pair'
EQUIVALENCE_VALUE_COLUMN = 'equivalent'


def load_csv_with_validation(filepath: str,
                             required_columns: List[str],
                             dtype_map: Optional[Dict[str, str]] = None) -> pd.DataFrame:
    """
    Load CSV file with column validation and optional data type specification.
    
    Args:
        filepath: Path to CSV file
        required_columns: List of column names that must be present
        dtype_map: Dict mapping column names to pandas dtypes
        
    Returns:
        Loaded DataFrame
        
    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If required columns are missing or data is invalid
    """
    file_path = Path(filepath)
    
    if not file_path.exists():
        raise FileNotFoundError(f"Data file not found: {filepath}")
    
    if file_path.suffix.lower() not in ['.csv', '.tsv', '.txt']:
        raise ValueError(f"Unsupported file format: {file_path.suffix}")
    
    delimiter = '\t' if file_path.suffix.lower() == '.tsv' else ','
    
    try:
        df = pd.read_csv(filepath, delimiter=delimiter, dtype=dtype_map, keep_default_na=False)
    except Exception as e:
        raise ValueError(f"Error reading CSV file {filepath}: {e}")
    
    if df.empty:
        raise ValueError(f"CSV file is empty: {filepath}")
    
    missing_columns = [col for col in required_columns if col not in df.columns]
    if missing_columns:
        available_columns = list(df.columns)
        raise ValueError(
            f"Missing required columns in {filepath}: {missing_columns}. "
            f"Available columns: {available_columns}"
        )
    
    return df


def is_number(value: Any) -> bool:
    """True for real numbers, excluding booleans."""
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def parse_equivalence_data(data: Any, source: str = "equivalence table") -> Dict[str, float]:
    """
    Parse a mapping of two-character pair codes to costs.
    
    Keys are lowercased. Entries with a key that is not two characters
    long or a non-numeric value are skipped.
    
    Args:
        data: Mapping of pair code to cost
        source: Name of the source for error messages
        
    Returns:
        Dictionary mapping pair codes to float costs
        
    Raises:
        ValueError: If data is not a mapping or holds no valid entries
    """
    if not isinstance(data, dict):
        raise ValueError(f"{source}: 'data' must be an object, got {type(data).__name__}")
    
    table = {}
    skipped = 0
    
    for pair_code, cost in data.items():
        if (not isinstance(pair_code, str) or len(pair_code) != 2 or not is_number(cost)
                or not math.isfinite(cost)):
            skipped += 1
            continue
        table[pair_code.lower()] = float(cost)
    
    if skipped:
        logger.debug("%s: skipped %d invalid entries", source, skipped)
    
    if not table:
        raise ValueError(f"No valid pair costs found in {source}")
    
    return table


def parse_equivalence_payload(payload: Any, source: str = "equivalence table") -> Dict[str, float]:
    """
    Parse an equivalence resource of the form {"data": {"xy": cost, ...}}.
    
    Raises:
        ValueError: If the payload does not have the expected shape
    """
    if not isinstance(payload, dict) or 'data' not in payload:
        raise ValueError(f"{source}: expected an object with a 'data' field")
    
    return parse_equivalence_data(payload['data'], source)


def load_equivalence_json(filepath: str) -> Dict[str, float]:
    """
    Load an equivalence table from a JSON file.
    
    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If the file is not valid JSON or has the wrong shape
    """
    file_path = Path(filepath)
    
    if not file_path.exists():
        raise FileNotFoundError(f"Equivalence table not found: {filepath}")
    
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            payload = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Error parsing JSON file {filepath}: {e}")
    
    return parse_equivalence_payload(payload, str(filepath))


def load_equivalence_csv(filepath: str,
                         pair_col: str = EQUIVALENCE_PAIR_COLUMN,
                         value_col: str = EQUIVALENCE_VALUE_COLUMN) -> Dict[str, float]:
    """
    Load an equivalence table from a CSV file with key_pair,equivalent columns.
    
    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If required columns are missing or no rows are valid
    """
    df = load_csv_with_validation(filepath, [pair_col, value_col], dtype_map={pair_col: str})
    
    values = pd.to_numeric(df[value_col], errors='coerce')
    data = {}
    for pair_code, value in zip(df[pair_col], values):
        if pd.isna(value):
            continue
        data[str(pair_code)] = float(value)
    
    return parse_equivalence_data(data, str(filepath))


def load_equivalence_file(filepath: str) -> Dict[str, float]:
    """Load an equivalence table from a .json or .csv file."""
    suffix = Path(filepath).suffix.lower()
    if suffix in ['.csv', '.tsv', '.txt']:
        return load_equivalence_csv(filepath)
    return load_equivalence_json(filepath)


def validate_counter_map(data: Any, name: str = "counters") -> List[str]:
    """
    Validate a mapping of names to non-negative integer counts.
    
    Integral floats (as produced by some JSON writers) are accepted.
    
    Args:
        data: Mapping to validate
        name: Name of the data for error messages
        
    Returns:
        List of validation issues (empty if all valid)
    """
    if not isinstance(data, dict):
        return [f"{name} must be an object, got {type(data).__name__}"]
    
    issues = []
    
    non_string_keys = [k for k in data.keys() if not isinstance(k, str) or not k]
    if non_string_keys:
        issues.append(f"{name} has invalid keys: {non_string_keys[:5]}")
    
    bad_values = [k for k, v in data.items()
                  if not is_number(v) or not math.isfinite(v) or v < 0 or v != int(v)]
    if bad_values:
        issues.append(
            f"{name} has non-count values for keys: "
            f"{bad_values[:5]}{'...' if len(bad_values) > 5 else ''}"
        )
    
    return issues


def validate_data_consistency(data_dict: Dict[str, float],
                              name: str = "data") -> List[str]:
    """
    Validate an equivalence table for completeness and plausible values.
    
    Args:
        data_dict: Dictionary of pair code to cost
        name: Name of the data for error messages
        
    Returns:
        List of validation issues (empty if all valid)
    """
    issues = []
    
    if not data_dict:
        issues.append(f"{name} is empty")
        return issues
    
    negative = [k for k, v in data_dict.items() if v < 0]
    if negative:
        issues.append(f"{name} has negative costs for keys: {negative[:5]}{'...' if len(negative) > 5 else ''}")
    
    values = [v for v in data_dict.values() if v > 0]
    if values:
        min_val, max_val = min(values), max(values)
        if max_val / min_val > 1000:
            issues.append(f"{name} has very large value range: {min_val:.6f} to {max_val:.6f}")
    
    return issues
