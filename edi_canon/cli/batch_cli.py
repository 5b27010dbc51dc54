"""
Command-line interface for batch canonicalization.

Usage:
    edi-canon process [--input <file_path>] [--company <code>] [options]
    edi-canon recalculate-versions [options]
    edi-canon rules [--rules <path>]
"""

import argparse
import os
import sys
from pathlib import Path

from pyspark.sql import SparkSession

from edi_canon.batch import PipelineDriver, SourceFileReader
from edi_canon.core.builder import CanonicalItemBuilder
from edi_canon.core.errors import RuleConfigError
from edi_canon.core.rules import PartnerRuleSet
from edi_canon.core.store import InMemoryCanonicalStore
from edi_canon.core.versioning import VersionRecalculator
from edi_canon.observability.logger import get_logger
from edi_canon.observability.metrics import start_metrics_server
from edi_canon.warehouse.canonical_store import PostgresCanonicalStore
from edi_canon.warehouse.catalog import PostgresProductCatalog
from edi_canon.warehouse.connection import DatabaseConnectionPool
from edi_canon.warehouse.stage_tracker import PostgresStageTracker

logger = get_logger(__name__)


def create_spark_session(app_name: str = "EdiCanon") -> SparkSession:
    """
    Create Spark session for reading source exports.

    Args:
        app_name: Application name

    Returns:
        SparkSession
    """
    spark = SparkSession.builder \
        .appName(app_name) \
        .master("local[*]") \
        .config("spark.sql.adaptive.enabled", "true") \
        .config("spark.sql.session.timeZone", "UTC") \
        .getOrCreate()

    return spark


def create_pool(args) -> DatabaseConnectionPool:
    """Create and open a connection pool sized for the worker count."""
    workers = getattr(args, "workers", None) or int(os.getenv("EDI_WORKERS", "4"))
    pool = DatabaseConnectionPool(
        host=args.db_host,
        port=args.db_port,
        database=args.db_name,
        user=args.db_user,
        password=args.db_password,
        max_size=max(10, workers + 2),
    )
    pool.open()
    return pool


def load_rule_set(rules_path: str | None) -> PartnerRuleSet:
    if rules_path:
        return PartnerRuleSet.from_yaml(rules_path)
    return PartnerRuleSet.default()


def process_command(args):
    """
    Execute canonicalization command.

    Args:
        args: Command-line arguments
    """
    try:
        rule_set = load_rule_set(args.rules)
    except (RuleConfigError, FileNotFoundError) as e:
        logger.error(f"Invalid partner rules: {e}")
        sys.exit(1)
    logger.info(f"Loaded {len(rule_set)} partner rules")

    if args.input and not Path(args.input).exists():
        logger.error(f"Input file not found: {args.input}")
        sys.exit(1)

    if args.metrics_port:
        start_metrics_server(args.metrics_port)

    spark = None
    pool = None
    tracker = None
    try:
        if not args.dry_run:
            pool = create_pool(args)
            tracker = PostgresStageTracker(pool)
            # before fetching, so records of crashed runs are picked up now
            tracker.release_stale_claims()

        if args.input:
            logger.info(f"Reading source records from {args.input}")
            spark = create_spark_session("EdiCanon-process")
            records = SourceFileReader(spark).read_records(
                args.input, company=args.company, limit=args.limit
            )
        else:
            if pool is None:
                pool = create_pool(args)
            records = (tracker or PostgresStageTracker(pool)).fetch_eligible(
                company=args.company, limit=args.limit
            )

        if args.dry_run:
            logger.info("DRY RUN MODE: No data will be written to database")
            store = InMemoryCanonicalStore()
            is_eligible = store.claim
            catalog = PostgresProductCatalog(pool) if pool else None
        else:
            store = PostgresCanonicalStore(pool)
            is_eligible = tracker.claim
            catalog = PostgresProductCatalog(pool)

        driver = PipelineDriver(
            builder=CanonicalItemBuilder(rule_set, catalog=catalog),
            store=store,
            max_workers=args.workers,
        )
        result = driver.run(records, is_eligible=is_eligible, recalculate=not args.skip_recalculate)

        # Display results
        logger.info("=" * 60)
        logger.info("PROCESSING COMPLETE")
        logger.info("=" * 60)
        logger.info(f"Source records offered: {result['total_records']}")
        logger.info(f"Skipped (already processed): {result['skipped']}")
        logger.info(f"Succeeded: {result['succeeded']}")
        logger.info(f"Rejected: {result['rejected']}")
        logger.info(f"Failed: {result['failed']}")
        logger.info(f"Line items written: {result['line_items']}")
        logger.info(f"Versions corrected: {result['versions_updated']} in {result['version_groups']} groups")
        logger.info("=" * 60)

        if args.dry_run:
            logger.info("DRY RUN: No data was written to the database")

    except Exception as e:
        logger.error(f"Error during batch processing: {e}", exc_info=True)
        sys.exit(1)
    finally:
        if pool is not None:
            pool.close()
        if spark is not None:
            spark.stop()


def recalculate_command(args):
    """
    Recalculate header versions for every (company, customer PO) group.

    Args:
        args: Command-line arguments
    """
    pool = create_pool(args)
    try:
        store = PostgresCanonicalStore(pool)
        result = VersionRecalculator(store, max_workers=args.workers).recalculate()
        logger.info(
            f"Recalculated {result.groups} groups: "
            f"{result.updated} of {result.headers} headers updated"
        )
    except Exception as e:
        logger.error(f"Error during version recalculation: {e}", exc_info=True)
        sys.exit(1)
    finally:
        pool.close()


def rules_command(args):
    """
    Print the loaded partner rule table.

    Args:
        args: Command-line arguments
    """
    try:
        rule_set = load_rule_set(args.rules)
    except (RuleConfigError, FileNotFoundError) as e:
        print(f"\nError: {e}")
        sys.exit(1)

    print(f"\n{'=' * 80}")
    print("PARTNER RULES")
    print(f"{'=' * 80}\n")
    print(f"{'Company':<12} {'Order type':<20} {'Quantity':<10} {'BOM':<12} {'Color sources'}")
    print(f"{'-' * 80}")
    for rule in sorted(rule_set, key=lambda r: r.key):
        print(
            f"{rule.company:<12} {rule.order_type:<20} {rule.quantity_source:<10} "
            f"{rule.bom_expansion:<12} {', '.join(rule.color_sources)}"
        )
    print(f"\n{len(rule_set)} rules\n")


def add_db_arguments(parser: argparse.ArgumentParser) -> None:
    """Database connection arguments shared by the database-backed commands."""
    parser.add_argument(
        "--db-host",
        default=os.getenv("DB_HOST", "localhost"),
        help="Database host (default: localhost)"
    )
    parser.add_argument(
        "--db-port",
        type=int,
        default=int(os.getenv("DB_PORT", "5432")),
        help="Database port (default: 5432)"
    )
    parser.add_argument(
        "--db-name",
        default=os.getenv("DB_NAME", "edi_canon"),
        help="Database name (default: edi_canon)"
    )
    parser.add_argument(
        "--db-user",
        default=os.getenv("DB_USER", "edi"),
        help="Database user (default: edi)"
    )
    parser.add_argument(
        "--db-password",
        default=os.getenv("DB_PASSWORD"),
        help="Database password (default: env var DB_PASSWORD)"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="edi-canon",
        description="EDI 850 purchase-order canonicalization",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Canonicalize every eligible record in the inbound table
  edi-canon process

  # Canonicalize one partner, at most 500 records, 8 workers
  edi-canon process --company Kohls --limit 500 --workers 8

  # Replay an exported JSON-lines file without writing anything
  edi-canon process --input exports/850-2024-03-11.jsonl --dry-run

  # Fix version ordering after out-of-order batches
  edi-canon recalculate-versions

  # Show the partner rule table
  edi-canon rules --rules config/partner_rules.yaml
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Process command
    process_parser = subparsers.add_parser("process", help="Canonicalize source records")
    process_parser.add_argument(
        "--input",
        help="JSON-lines export to read instead of the inbound table"
    )
    process_parser.add_argument(
        "--company",
        help="Only process records of this company code"
    )
    process_parser.add_argument(
        "--limit",
        type=int,
        help="Maximum number of records to process"
    )
    process_parser.add_argument(
        "--workers",
        type=int,
        default=int(os.getenv("EDI_WORKERS", "4")),
        help="Records processed concurrently (default: env var EDI_WORKERS or 4)"
    )
    process_parser.add_argument(
        "--rules",
        default=os.getenv("EDI_PARTNER_RULES"),
        help="Path to partner rules YAML file (default: bundled rules)"
    )
    process_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Build canonical records without writing to database"
    )
    process_parser.add_argument(
        "--skip-recalculate",
        action="store_true",
        help="Do not recalculate versions after the batch"
    )
    process_parser.add_argument(
        "--metrics-port",
        type=int,
        help="Expose Prometheus metrics on this port while running"
    )
    add_db_arguments(process_parser)

    # Recalculate command
    recalculate_parser = subparsers.add_parser(
        "recalculate-versions", help="Recalculate header versions"
    )
    recalculate_parser.add_argument(
        "--workers",
        type=int,
        default=int(os.getenv("EDI_WORKERS", "4")),
        help="Groups recalculated concurrently (default: env var EDI_WORKERS or 4)"
    )
    add_db_arguments(recalculate_parser)

    # Rules command
    rules_parser = subparsers.add_parser("rules", help="Print the partner rule table")
    rules_parser.add_argument(
        "--rules",
        default=os.getenv("EDI_PARTNER_RULES"),
        help="Path to partner rules YAML file (default: bundled rules)"
    )

    return parser


def main(argv: list[str] | None = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    # Execute command
    if args.command == "process":
        process_command(args)
    elif args.command == "recalculate-versions":
        recalculate_command(args)
    elif args.command == "rules":
        rules_command(args)


if __name__ == "__main__":
    main()
