#!/usr/bin/env python3
"""
Trade Economic Events Migration
Attaches the economic events that occurred during each trade's session

Reads a JSON list of trades ({"id", "date", "session", ...}), correlates each
trade against the event store and writes the enriched list (each trade gains
an "economic_events" array) to --output or stdout.
"""

import argparse
import json
import sys
import logging
from pathlib import Path
from datetime import datetime

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from econcal.config import get_config  # noqa: E402
from econcal.correlator import correlate_trades  # noqa: E402
from econcal.database import get_db_manager  # noqa: E402
from econcal.models import TradeSessionContext  # noqa: E402

logger = logging.getLogger(__name__)


def setup_logging(config):
    # stdout may carry the JSON output, so console logging goes to stderr
    logging.basicConfig(
        level=getattr(logging, str(config.LOG_LEVEL).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(config.LOG_FILE, encoding='utf-8'),
            logging.StreamHandler(sys.stderr)
        ]
    )


def parse_trade_date(value):
    """Trade dates arrive as "2025-06-17" or a full ISO timestamp"""
    text = str(value).strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    if len(text) == 10:
        return datetime.strptime(text, '%Y-%m-%d').date()
    return datetime.fromisoformat(text).date()


def load_trades(path):
    """Load trade records and their session contexts"""
    with open(path, 'r', encoding='utf-8') as f:
        trades = json.load(f)

    if not isinstance(trades, list):
        raise ValueError(f"expected a JSON list of trades, got {type(trades).__name__}")

    contexts = []
    for position, trade in enumerate(trades):
        try:
            contexts.append(TradeSessionContext(
                trade_id=str(trade['id']),
                trade_date=parse_trade_date(trade['date']),
                session=trade.get('session') or None,
            ))
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            label = trade.get('id', '?') if isinstance(trade, dict) else f"#{position}"
            logger.error(f"Skipping malformed trade record {label}: {e}")

    return trades, contexts


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Attach session economic events to trade records.")
    parser.add_argument("trades_file", help="JSON file containing a list of trades")
    parser.add_argument("--output", help="Where to write the enriched trades (default: stdout)")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Correlate and report only; do not write the enriched trades.",
    )
    parser.add_argument(
        "--include-no-session",
        action="store_true",
        help="Correlate trades without a session against their full day instead of skipping them.",
    )
    return parser.parse_args(argv)


def main(argv=None):
    """Main execution"""
    args = parse_args(argv)
    config = get_config()
    setup_logging(config)

    logger.info("=" * 70)
    logger.info("TRADE ECONOMIC EVENTS MIGRATION")
    logger.info("=" * 70)
    if args.dry_run:
        logger.info("DRY RUN MODE: no output will be written")

    try:
        trades, contexts = load_trades(args.trades_file)
    except (OSError, ValueError) as e:
        logger.error(f"Cannot load trades from {args.trades_file}: {e}")
        return 1
    logger.info(f"Loaded {len(trades)} trades")

    correlation = config.get_correlation_config()
    logger.info(f"Database: {config.describe_db()}")
    try:
        db = get_db_manager(config.get_db_config())
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        return 1

    batch = correlate_trades(
        contexts,
        db.event_source,
        impacts=correlation['impacts'],
        currencies=correlation['currencies'],
        skip_without_session=not args.include_no_session,
    )
    db.close_all()

    for trade in trades:
        if not isinstance(trade, dict):
            continue
        events = batch.results.get(str(trade.get('id')))
        if events:
            trade['economic_events'] = [event.to_dict() for event in events]

    logger.info(f"Migration complete: {batch.summary()}")
    if batch.failed:
        logger.warning(f"Failed trades: {', '.join(batch.failed)}")

    if args.dry_run:
        return 0

    payload = json.dumps(trades, indent=2, ensure_ascii=False, default=str)
    if args.output:
        Path(args.output).write_text(payload, encoding='utf-8')
        logger.info(f"Enriched trades written to {args.output}")
    else:
        sys.stdout.write(payload + "\n")

    return 1 if batch.failed else 0


if __name__ == '__main__':
    sys.exit(main())
