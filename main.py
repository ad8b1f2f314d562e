# main.py

"""Entry point for the cd_rates tracker (scrape run or read-only reports)."""

import argparse
import asyncio
import logging
import sys

from cd_rates.config.logging_config import setup_logging
from cd_rates.config.settings import Settings
from cd_rates.models.target import Target
from cd_rates.storage.history_log import CORRUPT_POLICIES

logger = logging.getLogger("cd_rates.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    valid_ids = ", ".join(
        Target.from_dict(t).slug for t in Settings.TARGETS
    )

    parser = argparse.ArgumentParser(
        prog="cd_rates",
        description="CD rate scraper with an append-only history log.",
        epilog=f"Available targets: {valid_ids}",
    )
    parser.add_argument(
        "-t",
        "--targets",
        default=None,
        help="Comma-separated target slugs (default: all).",
    )
    parser.add_argument(
        "-o",
        "--output",
        default=None,
        dest="output_dir",
        help="Custom data directory (default: data/).",
    )
    parser.add_argument(
        "--on-corrupt",
        choices=CORRUPT_POLICIES,
        default=None,
        dest="on_corrupt",
        help=(
            "What to do when the existing history log is unreadable "
            f"(default: {Settings.CORRUPT_LOG_POLICY})."
        ),
    )
    parser.add_argument(
        "--show",
        action="store_true",
        default=False,
        help="Print the latest recorded snapshot instead of scraping.",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["json", "table"],
        default="table",
        dest="output_format",
        help="Output format for --show (default: table).",
    )
    parser.add_argument(
        "--health",
        action="store_true",
        default=False,
        help="Run a connectivity health check on all targets.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Echo INFO-level progress to the console.",
    )
    return parser


def _run_scrape(args: argparse.Namespace) -> None:
    """Run one scrape and exit with its status."""
    from cd_rates.cli.runner import run_scrape

    exit_code = asyncio.run(
        run_scrape(
            target_csv=args.targets,
            output_dir=args.output_dir,
            on_corrupt=args.on_corrupt,
        )
    )
    sys.exit(exit_code)


def _run_show(args: argparse.Namespace) -> None:
    """Print the latest snapshot."""
    from cd_rates.cli.runner import run_show_latest

    exit_code = run_show_latest(args.output_dir, args.output_format)
    sys.exit(exit_code)


def _run_health_check(args: argparse.Namespace) -> None:
    """Run target connectivity health check."""
    from cd_rates.cli.runner import run_health_check

    exit_code = asyncio.run(run_health_check(args.targets))
    sys.exit(exit_code)


def main() -> None:
    """Route to a scrape run (default), --show or --health."""
    parser = _build_parser()
    args = parser.parse_args()

    log_file = setup_logging(
        console_level=logging.INFO if args.verbose else logging.WARNING
    )
    logger.info("cd_rates starting, log file: %s", log_file)

    try:
        if args.health:
            _run_health_check(args)
        elif args.show:
            _run_show(args)
        else:
            _run_scrape(args)
    except SystemExit:
        raise
    except Exception:
        logger.critical("Fatal error during run", exc_info=True)
        raise
    finally:
        logger.info("cd_rates shutting down")


if __name__ == "__main__":
    main()
