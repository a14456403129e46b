#!/usr/bin/env python3
"""Generate a demo loan portfolio and export it.

The portfolio is originated and serviced through the loan engine, then
written to the console, to JSON files or to Kafka topics. A delinquency
summary is logged at the end.

Usage:
    python scripts/generate_demo_portfolio.py
    python scripts/generate_demo_portfolio.py --clients 50 --sink json --output local/
    python scripts/generate_demo_portfolio.py --sink kafka --kafka-bootstrap localhost:9092
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from kredi.config import KrediConfig
from kredi.dates import parse_date
from kredi.exceptions import KrediError
from kredi.generators import DemoPortfolioGenerator
from kredi.logging import setup_logging
from kredi.money import format_currency
from kredi.reports import dashboard_summary, delinquency_report, delinquent_clients
from kredi.sinks import ConsoleSink, JsonFileSink, KafkaSink

logger = logging.getLogger(__name__)


def build_sink(args: argparse.Namespace, config: KrediConfig):
    """Create the sink selected on the command line."""
    if args.sink == "json":
        output_dir = Path(args.output) if args.output else config.output.json_output_dir
        return JsonFileSink(output_dir, pretty=args.pretty or config.output.pretty_json)
    if args.sink == "kafka":
        if args.kafka_bootstrap:
            config.kafka.bootstrap_servers = args.kafka_bootstrap
        return KafkaSink(config.kafka)
    return ConsoleSink(pretty=args.pretty, max_records=args.max_records)


def log_summary(book, reference_date) -> None:
    """Log headline figures and the worst delinquent clients."""
    dashboard = dashboard_summary(
        book.loans.values(), book.accounts.values(), book.transactions, reference_date
    )
    logger.info("=" * 60)
    logger.info("Open loans: %d (pending %d, overdue %d)",
                dashboard.open_loans_count, dashboard.pending_count, dashboard.overdue_count)
    logger.info("Total capital: %s", format_currency(dashboard.total_capital))
    logger.info("Receivables next 7 days: %s", format_currency(dashboard.receivables_next_days))

    items = delinquency_report(book.loans.values(), book.client_names(), reference_date)
    for client in delinquent_clients(items)[:5]:
        logger.info("  %-30s %2d items  %s", client.name, client.count, format_currency(client.total))
    logger.info("=" * 60)


def main() -> None:
    """Main entry point."""
    config = KrediConfig.from_env()

    parser = argparse.ArgumentParser(description="Generate a demo loan portfolio")
    parser.add_argument(
        "--clients",
        type=int,
        default=10,
        help="Number of clients to generate (default: 10)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=config.seed if config.seed is not None else 42,
        help="Random seed for reproducibility (default: 42)",
    )
    parser.add_argument(
        "--reference-date",
        type=str,
        default=None,
        help="Portfolio date as YYYY-MM-DD (default: today in Brasília)",
    )
    parser.add_argument(
        "--sink",
        choices=["console", "json", "kafka"],
        default="console",
        help="Output sink (default: console)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output directory for the json sink (default: $OUTPUT_DIR or output/)",
    )
    parser.add_argument(
        "--kafka-bootstrap",
        type=str,
        default=None,
        help="Kafka bootstrap servers (default: $KAFKA_BOOTSTRAP_SERVERS)",
    )
    parser.add_argument(
        "--pretty",
        action="store_true",
        help="Pretty-print JSON output",
    )
    parser.add_argument(
        "--max-records",
        type=int,
        default=None,
        help="Maximum records printed per entity by the console sink",
    )
    parser.add_argument(
        "--log-format",
        choices=["standard", "json"],
        default="standard",
        help="Log format (default: standard)",
    )
    args = parser.parse_args()

    setup_logging(config.log_level, args.log_format)

    try:
        reference_date = parse_date(args.reference_date) if args.reference_date else None
        generator = DemoPortfolioGenerator(
            seed=args.seed,
            num_clients=args.clients,
            timezone=config.engine.timezone,
        )
        book = generator.generate(reference_date)

        sink = build_sink(args, config)
        try:
            book.export([sink])
        finally:
            sink.close()
    except KrediError as exc:
        logger.error("Generation failed: %s", exc)
        sys.exit(1)

    log_summary(book, reference_date)


if __name__ == "__main__":
    main()
