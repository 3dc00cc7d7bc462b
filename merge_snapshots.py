#!/usr/bin/env python3
"""
Merge exported key statistics snapshots.

Imports each bundle additively into a fresh (in-memory by default) engine,
reports the combined metrics and optionally writes the merged export.
Importing the same bundle twice counts it twice.

Usage:
    python merge_snapshots.py a.json b.json
    python merge_snapshots.py a.json b.json --export exports/ --scheme qwerty --user sam
    python merge_snapshots.py exports/*.json --skip-invalid --csv
"""

import asyncio
import sys

from keystats.cli_utils import (
    configure_logging, create_standard_parser, handle_common_errors, load_tool_config
)
from keystats.engine import StatisticsEngine
from keystats.equivalence_table import EquivalenceTable
from keystats.output_utils import load_export_bundle, print_results, save_export_bundle
from keystats.storage import create_storage

TOOL_NAME = 'merge_snapshots'


def build_parser():
    cli = create_standard_parser(TOOL_NAME)

    group = cli.add_argument_group('Merge Options')
    group.add_argument(
        'bundles',
        nargs='+',
        metavar='BUNDLE',
        help="Exported snapshot files to merge, in order"
    )
    group.add_argument(
        '--skip-invalid',
        dest='skip_invalid',
        action='store_true',
        help="Skip bundles that fail validation instead of stopping"
    )
    return cli


@handle_common_errors
def main() -> int:
    cli = build_parser()
    args = cli.parse_args()

    config = load_tool_config(args)
    configure_logging(config, verbose=args.verbose)
    quiet = config['common'].get('quiet_mode', False)

    # Merging never touches the persisted statistics unless --state-file is given
    storage = create_storage({'state_file': args.state_file or 'memory'})

    engine_config = dict(config['engine'])
    engine_config['export'] = config['export']

    table = EquivalenceTable.from_config(config['equivalence_table'])
    engine = StatisticsEngine(storage=storage, equivalence_table=table, config=engine_config)

    if table.sources:
        asyncio.run(engine.load_equivalence_table())

    merged = 0
    skipped = 0
    for bundle_file in args.bundles:
        result = engine.import_snapshot(load_export_bundle(bundle_file))
        if not result.ok:
            if not args.skip_invalid:
                raise ValueError(f"Cannot import {bundle_file}: {result.error}")
            print(f"Skipping {bundle_file}: {result.error}", file=sys.stderr)
            skipped += 1
            continue

        merged += 1
        if not quiet:
            print(f"  + {bundle_file}: {result.keys_imported:,} keys, {result.pairs_imported:,} key pairs")

    if not quiet:
        print(f"\nMerged {merged} of {len(args.bundles)} bundle(s)"
              + (f", skipped {skipped}" if skipped else ""))
        print()

    if merged == 0:
        print("Error: no valid bundles to merge", file=sys.stderr)
        return 1

    format_config = config['output_formats'].get(args.output_format, {})
    print_results(engine.get_metrics(), args.output_format, format_config)

    if args.export:
        path = save_export_bundle(
            engine.export_snapshot(), args.export,
            prefix=config['export'].get('filename_prefix', 'keystats'),
            scheme_name=args.scheme, user_name=args.user,
        )
        if not quiet:
            print(f"\nWrote merged export to {path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
