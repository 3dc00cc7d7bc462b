#!/usr/bin/env python3
"""
CLI utilities for keystroke statistics.

Common functions for command-line argument parsing, logging setup and error
handling shared by the command-line front ends.
"""

import argparse
import copy
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config_loader import load_config
from .output_utils import OUTPUT_FORMATS

TOOL_DESCRIPTIONS = {
    'analyze_keystrokes': 'Record keystrokes into persistent statistics and report ergonomic metrics',
    'merge_snapshots': 'Merge exported key statistics snapshots into one bundle',
}

TOOL_EXAMPLES = {
    'analyze_keystrokes': [
        ("Type a text into the statistics", "--text 'the quick brown fox'"),
        ("Replay recorded key events, CSV output", "--events-file session.jsonl --csv"),
        ("Start over and export", "--reset --text-file practice.txt --export exports/"),
    ],
    'merge_snapshots': [
        ("Merge two exports into a directory", "a.json b.json --export exports/"),
        ("Merge with scheme and user in the file name", "a.json b.json --export exports/ --scheme qwerty --user sam"),
    ],
}


class StandardCLIParser:
    """
    Standardized command-line argument parser for the keystats tools.

    Provides consistent input/output arguments and help text; tools add
    their own argument groups through add_argument_group().
    """

    def __init__(self, tool_name: str, accepts_text: bool = False):
        """
        Initialize the CLI parser for a specific tool.

        Args:
            tool_name: Name of the tool (e.g., 'analyze_keystrokes')
            accepts_text: Add --text / --text-file / --events-file inputs
        """
        self.tool_name = tool_name
        self.accepts_text = accepts_text
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        description = TOOL_DESCRIPTIONS.get(self.tool_name, f'{self.tool_name} for key statistics')

        parser = argparse.ArgumentParser(
            description=description,
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=self._generate_epilog()
        )

        self._add_input_output_arguments(parser)
        return parser

    def _add_input_output_arguments(self, parser: argparse.ArgumentParser) -> None:
        """Add standard input and output arguments."""

        input_group = parser.add_argument_group('Input Options')

        input_group.add_argument(
            '--config',
            dest='config',
            default="config.yaml",
            help="Path to configuration file (default: config.yaml)"
        )

        input_group.add_argument(
            '--state-file',
            dest='state_file',
            help="Persisted statistics file, or 'memory' for no persistence (overrides config)"
        )

        input_group.add_argument(
            '--equivalence-source',
            dest='equivalence_sources',
            action='append',
            metavar='SOURCE',
            help="Equivalence table file or URL; repeat to add fallbacks (overrides config)"
        )

        if self.accepts_text:
            input_group.add_argument(
                '--text',
                dest='text',
                help="Text to type into the statistics"
            )
            input_group.add_argument(
                '--text-file',
                dest='text_file',
                help="Path to a practice text file"
            )
            input_group.add_argument(
                '--events-file',
                dest='events_file',
                help="Path to recorded key events (JSON array or JSON lines)"
            )

        output_group = parser.add_argument_group('Output Options')

        output_group.add_argument(
            '--output-format',
            dest='output_format',
            choices=OUTPUT_FORMATS,
            default='detailed',
            help="Output format (default: detailed)"
        )

        output_group.add_argument(
            '--csv',
            dest='csv',
            action='store_true',
            help="Output in CSV format (same as --output-format csv)"
        )

        output_group.add_argument(
            '--detailed',
            dest='detailed',
            action='store_true',
            help="Show detailed breakdown (same as --output-format detailed)"
        )

        output_group.add_argument(
            '--score-only',
            dest='score_only',
            action='store_true',
            help="Output only scores (same as --output-format score_only)"
        )

        output_group.add_argument(
            '--export',
            dest='export',
            metavar='PATH',
            help="Write an export bundle to PATH (a file, or a directory for a generated name)"
        )

        output_group.add_argument(
            '--scheme',
            dest='scheme',
            default='',
            help="Keyboard scheme name used in generated export file names"
        )

        output_group.add_argument(
            '--user',
            dest='user',
            default='',
            help="User name used in generated export file names"
        )

        output_group.add_argument(
            '--quiet',
            dest='quiet',
            action='store_true',
            help="Suppress verbose output"
        )

        output_group.add_argument(
            '--verbose',
            dest='verbose',
            action='store_true',
            help="Log at DEBUG level"
        )

    def add_argument_group(self, title: str) -> argparse._ArgumentGroup:
        """Add a tool-specific argument group."""
        return self.parser.add_argument_group(title)

    def _generate_epilog(self) -> str:
        """Generate epilog text with examples."""
        lines = ["Examples:"]

        for comment, arguments in TOOL_EXAMPLES.get(self.tool_name, []):
            lines.append(f"  # {comment}")
            lines.append(f"  python {self.tool_name}.py {arguments}")
            lines.append("")

        return "\n".join(lines)

    def parse_args(self, args: Optional[List[str]] = None) -> argparse.Namespace:
        """
        Parse command-line arguments with validation.

        Args:
            args: List of arguments (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        parsed_args = self.parser.parse_args(args)

        # Handle output format shortcuts
        if parsed_args.csv:
            parsed_args.output_format = 'csv'
        elif parsed_args.detailed:
            parsed_args.output_format = 'detailed'
        elif parsed_args.score_only:
            parsed_args.output_format = 'score_only'

        if self.accepts_text:
            given = [name for name in ('text', 'text_file', 'events_file')
                     if getattr(parsed_args, name) is not None]
            if len(given) > 1:
                options = ', '.join('--' + name.replace('_', '-') for name in given)
                self.parser.error(f"Cannot combine input options: {options}")

        return parsed_args


def create_standard_parser(tool_name: str, accepts_text: bool = False) -> StandardCLIParser:
    """Create a standardized CLI parser for a tool."""
    return StandardCLIParser(tool_name, accepts_text)


def load_tool_config(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Load the configuration named by --config and apply command-line overrides.

    Args:
        args: Parsed command-line arguments

    Returns:
        Full configuration dictionary
    """
    config = copy.deepcopy(load_config(args.config))

    if getattr(args, 'state_file', None):
        config['storage']['state_file'] = args.state_file
    if getattr(args, 'equivalence_sources', None):
        config['equivalence_table']['sources'] = list(args.equivalence_sources)
    if getattr(args, 'quiet', False):
        config['common']['quiet_mode'] = True

    return config


def configure_logging(config: Dict[str, Any], verbose: bool = False) -> None:
    """
    Configure root logging from the 'logging' config section.

    Args:
        config: Full configuration dictionary
        verbose: Force DEBUG level
    """
    logging_config = config.get('logging', {})
    level_name = 'DEBUG' if verbose else str(logging_config.get('level', 'WARNING')).upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        raise ValueError(f"Unknown logging level: {level_name}")

    logging.basicConfig(
        level=level,
        format=logging_config.get('format', '%(asctime)s - %(levelname)s - %(message)s'),
        stream=sys.stderr,
    )


def handle_common_errors(func):
    """
    Decorator to handle common CLI errors gracefully.

    Args:
        func: Function to wrap (typically main())

    Returns:
        Wrapped function with error handling
    """
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            print("\nOperation cancelled by user.", file=sys.stderr)
            return 130
        except FileNotFoundError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        except PermissionError as e:
            print(f"Permission error: {e}", file=sys.stderr)
            return 1
        except Exception as e:
            print(f"Unexpected error: {e}", file=sys.stderr)
            import traceback
            traceback.print_exc()
            return 1

    return wrapper


def print_configuration_summary(config: Dict[str, Any],
                                tool_name: str,
                                quiet: bool = False) -> None:
    """
    Print a summary of the storage and equivalence table settings.

    Args:
        config: Full configuration dictionary
        tool_name: Name of the tool
        quiet: If True, suppress output
    """
    if quiet:
        return

    print(f"{tool_name.replace('_', ' ').title()}")
    print("=" * 50)

    state_file = config['storage'].get('state_file')
    print(f"State file: {state_file if state_file else 'memory'}")

    sources = config['equivalence_table'].get('sources') or []
    if sources:
        print("\nEquivalence table sources:")
        for source in sources:
            if source.startswith(('http://', 'https://')):
                status = "~"
            else:
                status = "✓" if Path(source).exists() else "✗"
            print(f"  {status} {source}")
    else:
        print("\nEquivalence table sources: none")

    print()
