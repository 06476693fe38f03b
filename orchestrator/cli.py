"""
Orchestrator - CLI.

============================================================
RESPONSIBILITY
============================================================
Command-line interface for the storage ask index.

- Provides argparse-based CLI
- Loads configuration from .env, environment and flags
- Wires the remote clients into a CycleScheduler
- Prints every CycleReport as one JSON line on stdout

============================================================
USAGE
============================================================
storage-ask-index
storage-ask-index --policy continuous --cooldown 300
python -m orchestrator.cli --log-format json

Exit codes: 0 success, 1 configuration or fatal cycle error,
130 when a stop had to be forced after the grace period.

============================================================
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

from core.cancellation import StopSignal
from core.constants import SYSTEM_NAME, SYSTEM_VERSION
from core.exceptions import ConfigurationError, IndexerError
from market_sources import CoinMarketCapClient, LotusClient, MinerRegistryClient
from price_index import BatchFetcher, CycleReport, PriceNormalizer, RegistryMerger
from .models import CyclePolicy, IndexerConfig
from .core import CycleScheduler, setup_logging


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog=SYSTEM_NAME,
        description="Regional storage ask price index for Filecoin miners",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Every option falls back to its environment variable (see .env):
  LOTUS_API, LOTUS_API_TOKEN, LOTUS_API_RPS, MINERS_API_FG, MINERS_API_RS,
  COINMARKETCAP_API_KEY, COOLDOWN_SECONDS, CYCLE_POLICY, WAVE_INTERVAL_SECONDS,
  REQUEST_TIMEOUT_SECONDS, SHUTDOWN_GRACE_SECONDS, LOG_LEVEL, LOG_FORMAT

Examples:
  %(prog)s                                   # One cycle, report on stdout
  %(prog)s --policy continuous --cooldown 300
        """
    )

    # --------------------------------------------------------
    # Upstream Options
    # --------------------------------------------------------
    upstream_group = parser.add_argument_group("Upstream Options")

    upstream_group.add_argument(
        "--lotus-api",
        type=str,
        metavar="URL",
        help="Lotus JSON-RPC endpoint",
    )

    upstream_group.add_argument(
        "--registry-fg",
        type=str,
        metavar="URL",
        help="Registry A miner list",
    )

    upstream_group.add_argument(
        "--registry-rs",
        type=str,
        metavar="URL",
        help="Registry B miner list with ISO codes",
    )

    # --------------------------------------------------------
    # Execution Options
    # --------------------------------------------------------
    execution_group = parser.add_argument_group("Execution Options")

    execution_group.add_argument(
        "--policy",
        type=str,
        choices=[p.value for p in CyclePolicy],
        help="Run one cycle or repeat until stopped",
    )

    execution_group.add_argument(
        "--cooldown",
        type=float,
        metavar="SECONDS",
        help="Pause between cycles",
    )

    execution_group.add_argument(
        "--rps",
        type=int,
        metavar="N",
        help="Lotus requests per wave",
    )

    execution_group.add_argument(
        "--wave-interval",
        type=float,
        metavar="SECONDS",
        help="Minimum duration of a wave (0 disables pacing)",
    )

    # --------------------------------------------------------
    # Logging Options
    # --------------------------------------------------------
    logging_group = parser.add_argument_group("Logging Options")

    logging_group.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO)",
    )

    logging_group.add_argument(
        "--log-format",
        type=str,
        choices=["json", "text"],
        help="Logging format (default: text)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"%(prog)s {SYSTEM_VERSION}",
    )

    return parser


# ============================================================
# CLI CONFIGURATION BUILDER
# ============================================================

def build_config(args: argparse.Namespace) -> IndexerConfig:
    """
    Build configuration from the environment, then apply CLI overrides.

    Raises:
        ConfigurationError: if an environment value cannot be parsed
    """
    config = IndexerConfig.from_env()

    if args.lotus_api:
        config.lotus_api_url = args.lotus_api
    if args.registry_fg:
        config.registry_fg_url = args.registry_fg
    if args.registry_rs:
        config.registry_rs_url = args.registry_rs
    if args.policy:
        config.cycle_policy = CyclePolicy(args.policy)
    if args.cooldown is not None:
        config.cooldown_seconds = args.cooldown
    if args.rps is not None:
        config.max_concurrent_requests = args.rps
    if args.wave_interval is not None:
        config.wave_interval_seconds = args.wave_interval
    if args.log_level:
        config.log_level = args.log_level
    if args.log_format:
        config.log_format = args.log_format

    return config


def build_scheduler(
    config: IndexerConfig,
    stop_signal: Optional[StopSignal] = None,
) -> CycleScheduler:
    """Wire the remote clients and pipeline stages into a scheduler."""
    timeout = config.request_timeout_seconds

    merger = RegistryMerger([
        MinerRegistryClient(
            api_url=config.registry_fg_url,
            source_name="registry_fg",
            identifier_field="miner",
            timeout=timeout,
        ),
        MinerRegistryClient(
            api_url=config.registry_rs_url,
            source_name="registry_rs",
            identifier_field="address",
            location_field="isoCode",
            timeout=timeout,
        ),
    ])
    lotus = LotusClient(
        api_url=config.lotus_api_url,
        token=config.lotus_api_token,
        timeout=timeout,
    )
    fetcher = BatchFetcher(
        lotus,
        max_concurrent_requests=config.max_concurrent_requests,
        wave_interval_seconds=config.wave_interval_seconds,
    )
    rate_client = CoinMarketCapClient(
        api_key=config.coinmarketcap_api_key,
        timeout=timeout,
    )

    return CycleScheduler(
        merger=merger,
        fetcher=fetcher,
        rate_client=rate_client,
        normalizer=PriceNormalizer(),
        cooldown_seconds=config.cooldown_seconds,
        policy=config.cycle_policy,
        stop_signal=stop_signal,
        on_report=print_report,
    )


# ============================================================
# OUTPUT
# ============================================================

def print_report(report: CycleReport) -> None:
    """Write one report as a JSON line to stdout."""
    print(json.dumps(report.to_dict()), flush=True)


# ============================================================
# MAIN ENTRY POINT
# ============================================================

async def async_main(config: IndexerConfig) -> int:
    """
    Async main entry point.

    Returns:
        Exit code
    """
    scheduler = build_scheduler(config)
    scheduler.install_signal_handlers()

    try:
        forced = await scheduler.run_with_grace(config.shutdown_grace_seconds)
        return EXIT_INTERRUPTED if forced else EXIT_OK
    except IndexerError as e:
        logger.error(f"Fatal error: {e.to_log_format()}")
        return EXIT_ERROR
    finally:
        scheduler.restore_signal_handlers()
        await scheduler.close()


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command line arguments (default: sys.argv[1:])

    Returns:
        Exit code
    """
    load_dotenv()

    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    errors = config.validate()
    if errors:
        for error in errors:
            print(f"Error: {error}", file=sys.stderr)
        return EXIT_ERROR

    setup_logging(config.log_level, config.log_format)
    logger.info(f"Starting {SYSTEM_NAME} {SYSTEM_VERSION} | {config.to_dict()}")

    try:
        return asyncio.run(async_main(config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_INTERRUPTED


# ============================================================
# MODULE EXECUTION
# ============================================================

if __name__ == "__main__":
    sys.exit(main())
