#!/usr/bin/env python3
"""
Economic Calendar HTML Import Job
Extracts events from a saved calendar page and upserts them into the database

Exit codes: 0 = events imported, 2 = no events extracted, 1 = error
"""

import argparse
import csv
import sys
import logging
import uuid
from pathlib import Path
from datetime import datetime

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from econcal.config import get_config  # noqa: E402
from econcal.database import get_db_manager  # noqa: E402
from econcal.extractor import CalendarTableExtractor  # noqa: E402

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NO_DATA = 2

CSV_FIELDNAMES = [
    'id', 'event_date', 'time_utc', 'currency', 'impact', 'event',
    'actual', 'actual_result_type', 'forecast', 'previous', 'country', 'flag_code', 'flag_url'
]


def setup_logging(config):
    """File + stdout logging, UTF-8 on both"""
    logging.basicConfig(
        level=getattr(logging, str(config.LOG_LEVEL).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(config.LOG_FILE, encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ]
    )


def save_events_to_csv(events, config, source_name):
    """Save events to CSV file"""
    if not events or config.OUTPUT_MODE == 'db':
        return True

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    csv_filename = f"{Path(source_name).stem}_{timestamp}.csv"

    output_dir = Path(config.CSV_OUTPUT_DIR) / 'imports'
    output_path = output_dir / csv_filename

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w', newline='', encoding='utf-8') as csvfile:
            writer = csv.DictWriter(csvfile, fieldnames=CSV_FIELDNAMES)
            writer.writeheader()

            for event in events:
                data = event.to_dict()
                writer.writerow({field: data.get(field, '') for field in CSV_FIELDNAMES})

        file_size_kb = output_path.stat().st_size / 1024
        logger.info(f"CSV saved: {csv_filename} ({file_size_kb:.1f} KB, {len(events)} records)")
        return True

    except Exception as e:
        logger.error(f"Error saving CSV: {e}")
        return False


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Import a saved economic calendar HTML page.")
    parser.add_argument("html_file", help="Path to the saved calendar page")
    parser.add_argument(
        "--reference-date",
        type=lambda value: datetime.strptime(value, '%Y-%m-%d').date(),
        help="Date (YYYY-MM-DD) used to infer the year of 'Jun 17' style dates (default: today, UTC).",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Extract and report only; do not write to the database.",
    )
    return parser.parse_args(argv)


def main(argv=None):
    """Main execution"""
    args = parse_args(argv)
    config = get_config()
    setup_logging(config)

    run_id = str(uuid.uuid4())[:8]
    logger.info("=" * 70)
    logger.info("ECONOMIC CALENDAR HTML IMPORT")
    logger.info("=" * 70)
    logger.info(f"Run ID: {run_id}")
    logger.info(f"Source: {args.html_file}")
    logger.info(f"Output Mode: {config.OUTPUT_MODE}{' (dry run)' if args.dry_run else ''}")

    try:
        markup = Path(args.html_file).read_text(encoding='utf-8', errors='replace')
    except OSError as e:
        logger.error(f"Cannot read {args.html_file}: {e}")
        return EXIT_ERROR

    extractor = CalendarTableExtractor(**config.get_extractor_config())
    result = extractor.extract_report(markup, reference_date=args.reference_date)

    if not result.timezone.detected:
        logger.warning("Page timezone not detected; times were read as UTC")

    if result.no_data:
        logger.warning("No events extracted, nothing to import")
        return EXIT_NO_DATA

    events = result.events

    if config.OUTPUT_MODE in ('csv', 'both'):
        logger.info("Saving to CSV...")
        csv_saved = save_events_to_csv(events, config, args.html_file)
        # CSV is the only sink in csv mode and on a dry run
        if not csv_saved and (args.dry_run or config.OUTPUT_MODE == 'csv'):
            return EXIT_ERROR

    if args.dry_run or config.OUTPUT_MODE == 'csv':
        for event in events:
            logger.info(f"  {event.time_utc_iso} {event.currency:4} {event.impact:6} {event.event}")
        logger.info(f"Dry run complete: {len(events)} events")
        return EXIT_OK

    logger.info(f"Database: {config.describe_db()}")
    try:
        db = get_db_manager(config.get_db_config())
        db.ensure_schema()
        inserted, updated, processed = db.upsert_events(events)
        logger.info(f"UPSERT Results: {inserted} inserted, {updated} updated, {processed} processed")
        logger.info(f"Events in store: {db.count_events()}")
        db.close_all()
    except Exception as e:
        logger.error(f"Error during UPSERT: {e}")
        return EXIT_ERROR

    logger.info("=" * 70)
    logger.info("✓ Import completed successfully!")
    logger.info("=" * 70)
    return EXIT_OK


if __name__ == '__main__':
    sys.exit(main())
