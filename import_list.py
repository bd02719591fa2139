#!/usr/bin/env python3
"""
import_list.py - Import a CSV film list into the diary

Pipeline:
1. [PRECISION] Parse CSV → rows (Letterboxd list export or generic header/rows CSV)
2. [PRECISION] Extract entries → title, year, position, url, description, tags, date added
3. [REASONING] Catalog match → TMDb search, strategies tried in priority order,
   first accepted candidate wins
   Diary check: matches already logged in the diary are counted (needs Supabase credentials)
4. [PRECISION] Write → new destination list (--execute) or import_manifest.csv (dry run)

Safety:
  - Dry-run is the DEFAULT. Pass --execute to create the list and add items.
  - Ctrl-C stops cleanly after the current entry and still prints the summary.

Usage:
  python import_list.py watchlist.csv                          # dry-run, write manifest
  python import_list.py watchlist.csv --execute                # create list, add items
  python import_list.py list.csv --list-name "Noir" --execute  # custom list name
"""

import sys
import csv
import signal
import logging
import argparse
import threading
from pathlib import Path

from reelay_import.config import load_config
from reelay_import.extractor import extract_entries
from reelay_import.importer import ListImporter, ImportSummary
from reelay_import.library import ManifestWriter, SupabaseListWriter, SupabaseDiaryLookup, PersistError
from reelay_import.normalization import clean_list_title
from reelay_import.parser import parse_csv, read_csv_file, CSVImportError
from reelay_import.tmdb import TMDbClient

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def write_unmatched_report(summary: ImportSummary, output_path: Path) -> int:
    """Write entries that found no catalog match, for manual review"""
    unmatched = summary.unmatched_outcomes
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.DictWriter(
            f,
            fieldnames=['position', 'title', 'year', 'url', 'queries_tried', 'failed_queries']
        )
        writer.writeheader()
        for outcome in unmatched:
            entry = outcome.entry
            writer.writerow({
                'position': entry.position,
                'title': entry.title,
                'year': entry.year if entry.year is not None else '',
                'url': entry.url or '',
                'queries_tried': outcome.match.queries_tried,
                'failed_queries': '; '.join(outcome.match.failed_queries),
            })

    return len(unmatched)


def print_summary(summary: ImportSummary, dry_run: bool, list_name: str):
    """Print a human-readable summary of the import run"""
    print("\n" + "=" * 60)
    if dry_run:
        print("DRY RUN SUMMARY (nothing was written)")
    else:
        print("IMPORT SUMMARY")
    print("=" * 60)
    print(f"  List:                {list_name}")
    print(f"  Entries:             {summary.total:5d}")
    print(f"  Processed:           {summary.processed:5d}")
    print(f"  Matched:             {summary.matched:5d}")
    print(f"  Not matched:         {summary.unmatched:5d}")
    print(f"  {'Would add' if dry_run else 'Added'}:           {summary.persisted:5d}")
    print(f"  Failed to add:       {summary.persist_failed:5d}")
    print(f"  Already in diary:    {summary.in_diary:5d}")
    if summary.cancelled:
        print("  (cancelled before all entries were processed)")
    print("=" * 60)

    if dry_run:
        print("\nTo import, run again with --execute")


def main():
    parser = argparse.ArgumentParser(
        description='Import a CSV film list (Letterboxd export or generic CSV)',
        epilog="""
SAFETY: Defaults to dry-run. You must pass --execute to create the list.

Examples:
  python import_list.py watchlist.csv
  python import_list.py watchlist.csv --execute
  python import_list.py favourites.csv --list-name "Favourites" --description "All time" --execute
        """
    )
    parser.add_argument('csv_file', type=Path,
                       help='CSV file to import')
    parser.add_argument('--list-name', default=None,
                       help='Destination list name (default: derived from the file name)')
    parser.add_argument('--description', default=None,
                       help='Destination list description')
    parser.add_argument('--config', type=Path, default=Path('config_external.yaml'),
                       help='Configuration file (default: config_external.yaml)')
    parser.add_argument('--output', '-o', type=Path, default=None,
                       help='Directory for manifest and unmatched report (default: from config)')
    parser.add_argument('--delay', type=float, default=None,
                       help='Seconds to wait between entries (default: from config)')
    parser.add_argument('--execute', action='store_true',
                       help='Create the list and add items (default is dry-run)')
    parser.add_argument('--verbose', '-v', action='store_true',
                       help='Log every catalog query')

    args = parser.parse_args()
    dry_run = not args.execute

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if not args.csv_file.exists():
        logger.error(f"CSV file not found: {args.csv_file}")
        return 1

    if not args.config.exists():
        logger.warning(f"Config file not found: {args.config}, using defaults and environment")
    config = load_config(args.config)

    if not config['tmdb_api_key']:
        logger.error("No TMDb API key: set tmdb_api_key in the config or TMDB_API_KEY")
        return 1

    output_dir = args.output or Path(config['output_dir'])
    entry_delay = args.delay if args.delay is not None else config['entry_delay']

    # Parse + extract
    try:
        rows = parse_csv(read_csv_file(args.csv_file))
    except CSVImportError as e:
        logger.error(f"Cannot import {args.csv_file}: {e}")
        return 1
    except UnicodeDecodeError:
        logger.error(f"Unable to read {args.csv_file}: not UTF-8 text")
        return 1

    entries = extract_entries(rows)
    if not entries:
        logger.error(f"No importable entries in {args.csv_file}")
        return 1
    logger.info(f"Found {len(entries)} movies in {args.csv_file.name}")

    list_name = args.list_name or clean_list_title(args.csv_file.stem)

    # Destination
    if dry_run:
        writer = ManifestWriter()
        destination = list_name
    else:
        if not config['supabase_url'] or not config['supabase_key']:
            logger.error("--execute needs supabase_url and supabase_key (config or environment)")
            return 1
        if not config['user_id']:
            logger.error("--execute needs user_id (config or REELAY_USER_ID) to own the new list")
            return 1
        writer = SupabaseListWriter(config['supabase_url'], config['supabase_key'], config['user_id'])
        try:
            destination = writer.create_list(list_name, args.description)
        except PersistError as e:
            logger.error(f"Could not create list '{list_name}': {e}")
            return 1

    tmdb = TMDbClient(config['tmdb_api_key'], Path(config['tmdb_cache_path']))
    diary_lookup = None
    if config['supabase_url'] and config['supabase_key']:
        diary_lookup = SupabaseDiaryLookup(config['supabase_url'], config['supabase_key'])
    else:
        logger.info("No Supabase credentials, skipping diary check")
    importer = ListImporter(tmdb, writer, entry_delay=entry_delay, diary_lookup=diary_lookup)

    # Ctrl-C finishes the current entry, then stops
    cancel_event = threading.Event()
    signal.signal(signal.SIGINT, lambda signum, frame: cancel_event.set())

    summary = importer.run(entries, destination, cancel_event=cancel_event)

    if dry_run:
        writer.write(output_dir / 'import_manifest.csv')

    unmatched_path = output_dir / 'unmatched.csv'
    if write_unmatched_report(summary, unmatched_path):
        logger.info(f"Unmatched entries written to {unmatched_path}")

    stats = tmdb.get_cache_stats()
    logger.info(
        f"TMDb cache: {stats['hits']} hits, {stats['misses']} misses "
        f"({stats['hit_rate']:.0f}% hit rate)"
    )

    print_summary(summary, dry_run, list_name)
    return 0


if __name__ == '__main__':
    sys.exit(main())
