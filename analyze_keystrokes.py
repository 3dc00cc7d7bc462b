#!/usr/bin/env python3
"""
Keystroke statistics recorder and reporter.

Types practice text (or replays recorded key-down events) into the persisted
key statistics, then reports key frequencies, hand alternation and the
frequency-weighted equivalent.

Usage:
    python analyze_keystrokes.py --text "the quick brown fox"
    python analyze_keystrokes.py --text-file practice.txt --csv
    python analyze_keystrokes.py --events-file session.jsonl --export exports/ --scheme qwerty --user sam
    python analyze_keystrokes.py --import old_export.json --score-only
    python analyze_keystrokes.py --reset --quiet
"""

import asyncio
import logging
import sys
from pathlib import Path

from keystats.cli_utils import (
    configure_logging, create_standard_parser, handle_common_errors,
    load_tool_config, print_configuration_summary
)
from keystats.config_loader import get_config_loader
from keystats.engine import StatisticsEngine
from keystats.equivalence_table import EquivalenceTable
from keystats.output_utils import (
    load_export_bundle, print_results, save_export_bundle, save_results_to_file
)
from keystats.storage import create_storage
from keystats.text_utils import load_key_events, replay_events, replay_text

logger = logging.getLogger(__name__)

TOOL_NAME = 'analyze_keystrokes'


def build_parser():
    cli = create_standard_parser(TOOL_NAME, accepts_text=True)

    group = cli.add_argument_group('Statistics Options')
    group.add_argument(
        '--import',
        dest='import_files',
        action='append',
        metavar='FILE',
        help="Merge an exported snapshot into the statistics (repeatable)"
    )
    group.add_argument(
        '--reset',
        dest='reset',
        action='store_true',
        help="Clear all statistics before recording"
    )
    group.add_argument(
        '--no-passages',
        dest='no_passages',
        action='store_true',
        help="Type the text as one continuous sequence instead of one per blank-line passage"
    )
    group.add_argument(
        '--save-results',
        dest='save_results',
        metavar='FILE',
        help="Also write the formatted results to FILE"
    )
    return cli


@handle_common_errors
def main() -> int:
    cli = build_parser()
    args = cli.parse_args()

    config = load_tool_config(args)
    configure_logging(config, verbose=args.verbose)
    quiet = config['common'].get('quiet_mode', False)

    print_configuration_summary(config, TOOL_NAME, quiet=quiet)

    if not quiet and Path(args.config).exists():
        issues = get_config_loader(args.config).validate_config()
        if issues:
            print("Configuration warnings:")
            for issue in issues:
                print(f"  {issue}")
            print()

    engine_config = dict(config['engine'])
    engine_config['export'] = config['export']

    table = EquivalenceTable.from_config(config['equivalence_table'])
    engine = StatisticsEngine(
        storage=create_storage(config['storage']),
        equivalence_table=table,
        config=engine_config,
    )
    logger.debug("Equivalence table: %s", table.describe())

    if args.reset:
        engine.reset()
        if not quiet:
            print("Statistics reset.")

    if table.sources:
        loaded = asyncio.run(engine.load_equivalence_table())
        if not quiet:
            if loaded:
                print(f"Loaded {len(table)} equivalence values from {table.source_used}")
            else:
                print("Equivalence table unavailable; the equivalent will not be reported.")

    for import_file in args.import_files or []:
        result = engine.import_snapshot(load_export_bundle(import_file))
        if not result.ok:
            raise ValueError(f"Cannot import {import_file}: {result.error}")
        if not quiet:
            print(f"Imported {import_file}: {result.keys_imported:,} keys, "
                  f"{result.pairs_imported:,} key pairs")

    counts = None
    if args.text is not None:
        counts = replay_text(engine, args.text, respect_passages=not args.no_passages)
    elif args.text_file is not None:
        text = Path(args.text_file).read_text(encoding='utf-8')
        counts = replay_text(engine, text, respect_passages=not args.no_passages)
    elif args.events_file is not None:
        counts = replay_events(engine, load_key_events(args.events_file))

    if counts is not None and not quiet:
        print(f"Recorded {counts['accepted']:,} keystrokes "
              f"({counts['dropped']:,} dropped, {counts['boundaries']:,} sequence boundaries)")
        print()

    if engine.last_persistence_error is not None:
        print(f"Warning: statistics were not saved: {engine.last_persistence_error}", file=sys.stderr)

    metrics = engine.get_metrics()
    format_config = config['output_formats'].get(args.output_format, {})
    print_results(metrics, args.output_format, format_config)

    if args.save_results:
        save_results_to_file(metrics, args.save_results, args.output_format, format_config)

    if args.export:
        path = save_export_bundle(
            engine.export_snapshot(), args.export,
            prefix=config['export'].get('filename_prefix', 'keystats'),
            scheme_name=args.scheme, user_name=args.user,
        )
        if not quiet:
            print(f"\nExported statistics to {path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
