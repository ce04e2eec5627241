"""
Command-line interface for tabular-diff.

Provides argument parsing and the CLI entry point.
"""

import argparse
import sys
from typing import List, Optional

from .config import (
    DEFAULT_MAX_CONCURRENT_DIFFS,
    DEFAULT_MAX_EXAMPLES,
    DEFAULT_SUMMARY_DIR,
    DEFAULT_TIMEOUT,
    EXCLUDED_COLUMN_PATTERNS,
    LOCAL_CONFIG_FILENAME,
)


class CustomHelpFormatter(argparse.RawDescriptionHelpFormatter):
    """Custom formatter for prettier help output."""

    def __init__(self, prog, indent_increment=2, max_help_position=40, width=100):
        super().__init__(prog, indent_increment, max_help_position, width)

    def _format_action_invocation(self, action):
        if not action.option_strings:
            return super()._format_action_invocation(action)
        return ', '.join(action.option_strings)


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    description = """
  Hash-based CSV comparison between a baseline and a candidate dataset.

  Reports added, removed and updated rows, separating meaningful updates
  from updates confined to excluded columns (inventory, availability, ...).

┌─────────────────────────────────────────────────────────────────────────────┐
│  MODES OF OPERATION                                                         │
├─────────────────────────────────────────────────────────────────────────────┤
│                                                                             │
│  1. Local Mode                                                              │
│     Compares two CSV files, or two http(s) URLs.                            │
│     Requires: --baseline and --candidate                                    │
│                                                                             │
│  2. Folder Mode                                                             │
│     Compares every baseline_<name>.csv / candidate_<name>.csv pair.         │
│     Requires: --folder                                                      │
│                                                                             │
└─────────────────────────────────────────────────────────────────────────────┘
"""

    epilog = f"""
┌─────────────────────────────────────────────────────────────────────────────┐
│  EXAMPLES                                                                   │
└─────────────────────────────────────────────────────────────────────────────┘

  Compare local files:
    %(prog)s --baseline production.csv --candidate development.csv

  Composite primary key, case-insensitive:
    %(prog)s -b prod.csv -d dev.csv --primary-key "sku,locale" --ignore-case

  Compare two exports served over HTTPS:
    %(prog)s -b https://prod.example.com/feed.csv -d https://dev.example.com/feed.csv

  Batch process a folder:
    %(prog)s --folder ./exports --primary-key id

┌─────────────────────────────────────────────────────────────────────────────┐
│  NOTES                                                                      │
└─────────────────────────────────────────────────────────────────────────────┘

  • Without --primary-key the key is auto-detected from the baseline
  • Defaults can be set in {LOCAL_CONFIG_FILENAME} (searched upwards from cwd)
  • Exit status: 0 identical, 1 differences found, 2 error
"""

    parser = argparse.ArgumentParser(
        prog='tabular-diff',
        description=description,
        epilog=epilog,
        formatter_class=CustomHelpFormatter,
    )

    # Input sources
    input_group = parser.add_argument_group(
        '📥 Input Sources',
        'Specify input files or a folder (choose one mode)'
    )
    input_group.add_argument(
        '--baseline', '-b',
        type=str,
        default='',
        metavar='FILE|URL',
        help='Baseline (production) CSV file or URL.'
    )
    input_group.add_argument(
        '--candidate', '-d',
        type=str,
        default='',
        metavar='FILE|URL',
        help='Candidate (development) CSV file or URL.'
    )
    input_group.add_argument(
        '--folder', '-f',
        type=str,
        default='',
        metavar='DIR',
        help='Folder of file pairs named\n'
             '  baseline_<name>.csv\n'
             '  candidate_<name>.csv'
    )

    # Core options
    core_group = parser.add_argument_group(
        '⚙️  Core Options',
        'Primary configuration for diff operations'
    )
    core_group.add_argument(
        '--primary-key', '-k',
        type=str,
        default=None,
        metavar='KEY',
        help='Primary key column(s) for row matching.\n'
             'Use comma-separated values for composite keys.\n'
             '(default: auto-detect)'
    )
    core_group.add_argument(
        '--max-examples', '-m',
        type=int,
        default=None,
        metavar='NUM',
        help=f'Maximum example IDs per change type.\n'
             f'(default: {DEFAULT_MAX_EXAMPLES})'
    )
    core_group.add_argument(
        '--exclude', '-x',
        action='append',
        default=None,
        metavar='PATTERN',
        help=f'Column name pattern whose changes are not meaningful.\n'
             f'Repeat for several; replaces the defaults.\n'
             f'(default: {", ".join(EXCLUDED_COLUMN_PATTERNS)})'
    )
    core_group.add_argument(
        '--ignore-case',
        action='store_true',
        help='Compare values case-insensitively.'
    )
    core_group.add_argument(
        '--no-trim',
        action='store_true',
        help='Keep surrounding whitespace when comparing.'
    )
    core_group.add_argument(
        '--wide-digest',
        action='store_true',
        help='Use 128-bit MD5 row digests instead of 32-bit djb2.'
    )
    core_group.add_argument(
        '--max-rows', '-r',
        type=int,
        default=None,
        metavar='NUM',
        help='Maximum rows to read per CSV file.\n'
             '(default: no limit)'
    )
    core_group.add_argument(
        '--max-concurrent-diffs', '-c',
        type=int,
        default=DEFAULT_MAX_CONCURRENT_DIFFS,
        metavar='NUM',
        help=f'Maximum comparisons to run in parallel (folder mode).\n'
             f'(default: {DEFAULT_MAX_CONCURRENT_DIFFS})'
    )

    # URL mode configuration
    url_group = parser.add_argument_group(
        '🌐 URL Configuration',
        'Settings used when inputs are URLs'
    )
    url_group.add_argument(
        '--timeout', '-t',
        type=int,
        default=DEFAULT_TIMEOUT,
        metavar='SECS',
        help=f'HTTP request timeout in seconds.\n'
             f'(default: {DEFAULT_TIMEOUT} = 15 minutes)'
    )
    url_group.add_argument(
        '--insecure',
        action='store_true',
        help='Skip TLS certificate verification.'
    )

    # Output configuration
    output_group = parser.add_argument_group(
        '📤 Output Configuration',
        'Control where results are saved'
    )
    output_group.add_argument(
        '--summary-dir', '-s',
        type=str,
        default=DEFAULT_SUMMARY_DIR,
        metavar='DIR',
        help=f'Directory for JSON summary reports.\n'
             f'(default: {DEFAULT_SUMMARY_DIR})'
    )
    output_group.add_argument(
        '--export', '-e',
        type=str,
        default=None,
        metavar='FILE',
        help='Write example rows to a CSV file (local mode).'
    )

    # Debugging
    debug_group = parser.add_argument_group(
        '🔍 Debugging',
        'Options for troubleshooting and verbose output'
    )
    debug_group.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose/debug output.'
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    from .main import run_main

    parser = create_parser()
    args = parser.parse_args(argv)
    return run_main(args)


if __name__ == "__main__":
    sys.exit(main())
