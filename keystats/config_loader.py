#!/usr/bin/env python3
"""
Configuration loader for keystroke statistics.

Provides unified configuration management using YAML files. Sections missing
from the file fall back to built-in defaults.
"""

import copy
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, List

DEFAULT_CONFIG: Dict[str, Any] = {
    'common': {
        'data_directories': {'base': 'input/'},
        'quiet_mode': False,
    },
    'storage': {
        'state_file': '~/.keystats/key_stats.json',
    },
    'equivalence_table': {
        'sources': [],
        'max_attempts': 3,
        'retry_delay': 0.5,
        'request_timeout': 5.0,
        'overall_timeout': 15.0,
    },
    'engine': {
        'analyzer_options': {},
    },
    'export': {
        'version': '1.0',
        'description': 'Key statistics (hand alternation and equivalent analysis)',
        'filename_prefix': 'keystats',
    },
    'output_formats': {
        'detailed': {'top_keys': 10, 'top_pairs': 10},
        'csv': {'delimiter': ',', 'precision': 2, 'include_headers': True},
        'score_only': {'precision': 2, 'separator': ' '},
    },
    'logging': {
        'level': 'WARNING',
        'format': '%(asctime)s - %(levelname)s - %(message)s',
    },
}

SECTIONS = list(DEFAULT_CONFIG.keys())


def merge_dicts(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_dicts(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class ConfigLoader:
    """Handles loading and processing of YAML configuration files."""

    def __init__(self, config_path: str = "config.yaml"):
        """
        Initialize configuration loader.

        Args:
            config_path: Path to the YAML configuration file
        """
        self.config_path = Path(config_path)
        self._config_cache: Optional[Dict[str, Any]] = None

    def load_config(self) -> Dict[str, Any]:
        """
        Load YAML configuration file merged over the defaults.

        Returns:
            Full configuration dictionary

        Raises:
            FileNotFoundError: If configuration file doesn't exist
            yaml.YAMLError: If YAML parsing fails
            ValueError: If the file does not contain a mapping
        """
        if self._config_cache is not None:
            return self._config_cache

        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Error parsing YAML configuration: {e}")

        if config is None:
            config = {}

        if not isinstance(config, dict):
            raise ValueError(f"Configuration must be a mapping: {self.config_path}")

        self._config_cache = merge_dicts(DEFAULT_CONFIG, config)
        self._resolve_data_file_paths(self._config_cache)
        return self._config_cache

    def _resolve_data_file_paths(self, config: Dict[str, Any]) -> None:
        """
        Resolve relative equivalence table sources against the base data directory.

        Args:
            config: Full configuration (modified in place)
        """
        base_dir = config['common'].get('data_directories', {}).get('base', 'input/')
        table_config = config['equivalence_table']

        resolved = []
        for source in table_config.get('sources') or []:
            source = str(source)
            if source.startswith(('http://', 'https://')):
                resolved.append(source)
                continue

            filepath = Path(source).expanduser()
            # If path is relative and doesn't already start with the base directory
            if not filepath.is_absolute() and not source.startswith(base_dir):
                filepath = Path(base_dir) / filepath
            resolved.append(str(filepath))

        table_config['sources'] = resolved

    def get_section(self, section_name: str) -> Dict[str, Any]:
        """
        Get a configuration section.

        Args:
            section_name: Name of the section (e.g., 'equivalence_table')

        Returns:
            Section dictionary

        Raises:
            ValueError: If section is unknown
        """
        full_config = self.load_config()

        if section_name not in full_config:
            raise ValueError(
                f"Section '{section_name}' not found in configuration. "
                f"Available sections: {list(full_config.keys())}"
            )

        return full_config[section_name]

    def get_output_format_config(self, format_name: str) -> Dict[str, Any]:
        """
        Get output format configuration.

        Args:
            format_name: Name of output format (csv, detailed, score_only)

        Returns:
            Output format configuration
        """
        output_formats = self.get_section('output_formats')
        return output_formats.get(format_name, {})

    def validate_config(self) -> List[str]:
        """
        Validate the configuration and return any issues found.

        Returns:
            List of validation error messages (empty if valid)
        """
        try:
            config = self.load_config()
        except (ValueError, FileNotFoundError, yaml.YAMLError) as e:
            return [f"Configuration error: {e}"]

        issues = []

        unknown = [k for k in config.keys() if k not in SECTIONS]
        if unknown:
            issues.append(f"Unknown sections: {unknown}")

        table_config = config['equivalence_table']
        if not table_config.get('sources'):
            issues.append("No equivalence table sources configured")
        for option in ['max_attempts', 'retry_delay', 'request_timeout', 'overall_timeout']:
            value = table_config.get(option)
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value < 0:
                issues.append(f"equivalence_table.{option} must be a non-negative number")
        if isinstance(table_config.get('max_attempts'), int) and table_config['max_attempts'] < 1:
            issues.append("equivalence_table.max_attempts must be at least 1")

        # Local sources that do not exist are reported but not fatal
        for source in table_config.get('sources') or []:
            if not source.startswith(('http://', 'https://')) and not Path(source).exists():
                issues.append(f"Equivalence table source not found: {source}")

        return issues


# Global configuration loader instance
_config_loader: Optional[ConfigLoader] = None

def get_config_loader(config_path: str = "config.yaml") -> ConfigLoader:
    """
    Get global configuration loader instance (singleton pattern).

    Args:
        config_path: Path to configuration file

    Returns:
        ConfigLoader instance
    """
    global _config_loader

    if _config_loader is None or _config_loader.config_path != Path(config_path):
        _config_loader = ConfigLoader(config_path)

    return _config_loader

def load_config(config_path: str = "config.yaml") -> Dict[str, Any]:
    """
    Convenience function to load the full configuration.

    Falls back to the defaults when the file does not exist.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary
    """
    loader = get_config_loader(config_path)
    if not loader.config_path.exists():
        return copy.deepcopy(DEFAULT_CONFIG)
    return loader.load_config()
