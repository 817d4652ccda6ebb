"""
Command-line interface for the Form 5500 search tools.

Usage:
    python -m scripts.form5500 rebuild --section latest --years 2019 2020
    python -m scripts.form5500 rebuild --section all --years 2020 --rk-mapping-file rk.csv
    python -m scripts.form5500 rebuild --section all --years 2020 --dry-run
    python -m scripts.form5500 unmatched-rks --jira-assignee 5b10ac8d82e05b22cc7d4ef5
    python -m scripts.form5500 extension zip_codes
"""

import argparse
import logging
import os
import sys

from .config import SECTIONS, UNMATCHED_RKS_FILE

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def get_connection():
    """Get database connection."""
    from db_config import get_connection as _get_connection
    return _get_connection()


def _banner(title):
    print(f"\n{'='*60}")
    print(title)
    print(f"{'='*60}\n")


def cmd_rebuild(args):
    """Rebuild form_5500_search and its materialized view."""
    from .search_table import get_rebuild_statements, rebuild_search_table

    if args.dry_run:
        for i, statement in enumerate(
                get_rebuild_statements(args.section, args.years, args.rk_mapping_file), 1):
            print(f"-- [{i}] {statement.description}")
            if statement.values is not None:
                print(f"-- ({len(statement.values):,} rows)")
            print(statement.statement.strip() + "\n")
        return

    _banner(f"REBUILDING SEARCH TABLE: {args.section} {', '.join(args.years)}")

    conn = get_connection()
    try:
        count = rebuild_search_table(conn, args.section, args.years, args.rk_mapping_file)
        print(f"\n  Statements executed: {count:,}")
    finally:
        conn.close()


def cmd_unmatched_rks(args):
    """Write the unmatched recordkeeper report."""
    from .unmatched import find_unmatched_rks

    _banner("FINDING UNMATCHED RECORDKEEPERS")

    conn = get_connection()
    try:
        count = find_unmatched_rks(
            conn,
            output_path=args.output,
            jira_creator=args.jira_creator,
            jira_token=args.jira_token,
            jira_assignee=args.jira_assignee,
        )
        print(f"  Unmatched rks: {count:,}")
        print(f"  Report:        {args.output}")
    finally:
        conn.close()


def cmd_extension(args):
    """Install an optional extension."""
    from .extensions import call_extension

    _banner(f"ADDING EXTENSION: {args.name}")

    conn = get_connection()
    try:
        call_extension(conn, args.name, download_dir=args.download_dir,
                       force_download=args.force_download)
    finally:
        conn.close()


def build_parser():
    parser = argparse.ArgumentParser(
        description="Form 5500 search table tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m scripts.form5500 rebuild --section latest --years 2019 2020
  python -m scripts.form5500 rebuild --section all --years 2020 --rk-mapping-file rk.csv
  python -m scripts.form5500 unmatched-rks --output unmatched_rks.csv
  python -m scripts.form5500 extension zip_codes
        """
    )
    parser.add_argument('--verbose', '-v', action='store_true', help='Log SQL statements')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Rebuild command
    rebuild_parser = subparsers.add_parser('rebuild', help='Rebuild the search table')
    rebuild_parser.add_argument('--section', choices=SECTIONS, default='latest',
                                help='Data set section (default: latest)')
    rebuild_parser.add_argument('--years', nargs='+', required=True, help='Filing years')
    rebuild_parser.add_argument('--rk-mapping-file', '-m', help='CSV of provider name, company id')
    rebuild_parser.add_argument('--dry-run', action='store_true', help='Print SQL without running it')
    rebuild_parser.set_defaults(func=cmd_rebuild)

    # Unmatched rks command
    rks_parser = subparsers.add_parser('unmatched-rks', help='Report rks with no company id')
    rks_parser.add_argument('--output', '-o', default=UNMATCHED_RKS_FILE, help='Report CSV path')
    rks_parser.add_argument('--jira-creator', default=os.environ.get('JIRA_CREATOR'),
                            help='Jira account that creates the issue')
    rks_parser.add_argument('--jira-token', default=os.environ.get('JIRA_TOKEN'),
                            help='Jira API token')
    rks_parser.add_argument('--jira-assignee', default=os.environ.get('JIRA_ASSIGNEE'),
                            help='Jira Cloud accountId to assign')
    rks_parser.set_defaults(func=cmd_unmatched_rks)

    # Extension command
    ext_parser = subparsers.add_parser('extension', help='Install an optional extension')
    ext_parser.add_argument('name', help='Extension name (zip_codes)')
    ext_parser.add_argument('--download-dir', help='Where downloaded files are kept')
    ext_parser.add_argument('--force-download', action='store_true', help='Download even if present')
    ext_parser.set_defaults(func=cmd_extension)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        args.func(args)
    except Exception as e:
        logger.error(f"{args.command} failed: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
