"""
Orchestrator - Core.

============================================================
RESPONSIBILITY
============================================================
Runs indexing cycles.

- Refreshes the provider registries
- Fetches the exchange rate and the provider asks
- Normalizes and aggregates prices into a CycleReport
- Paces cycles with a cooldown
- Handles signals (SIGINT, SIGTERM) through a cooperative stop

============================================================
STATE MACHINE
============================================================
IDLE -> REFRESHING_REGISTRIES -> FETCHING -> AGGREGATING
     -> REPORTING -> COOLING_DOWN -> (IDLE | STOPPED)

A cycle without an exchange rate goes straight from
REFRESHING_REGISTRIES to REPORTING with an aborted report.
Any unexpected exception is fatal: the scheduler moves to
STOPPED and re-raises it wrapped in a CycleError.

============================================================
"""

import asyncio
import inspect
import json
import logging
import signal
import sys
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, TextIO, Union

from core.cancellation import StopSignal
from core.constants import AVERAGE_PRICE_PLACES, NATIVE_SYMBOL, REFERENCE_SYMBOL, SYSTEM_NAME
from core.exceptions import CycleError, StateTransitionError
from market_sources import CoinMarketCapClient
from price_index import (
    BatchFetcher,
    CycleReport,
    PriceNormalizer,
    RegionalAggregator,
    RegistryMerger,
    format_decimal,
    format_exchange_rate,
)
from .models import (
    CyclePolicy,
    CycleState,
    StateChange,
    is_valid_transition,
)


logger = logging.getLogger(__name__)

ReportCallback = Callable[[CycleReport], Union[None, Awaitable[None]]]


# ============================================================
# LOGGING SETUP
# ============================================================

def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """
    Set up structured logging.

    Logs go to stderr by default so that stdout carries only reports.

    Args:
        level: Log level
        log_format: Output format (json or text)
        stream: Output stream

    Returns:
        Configured logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps({
                "timestamp": "%(asctime)s",
                "level": "%(levelname)s",
                "logger": "%(name)s",
                "message": "%(message)s",
                "system": SYSTEM_NAME,
            })
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    return logging.getLogger("orchestrator")


# ============================================================
# CYCLE SCHEDULER
# ============================================================

class CycleScheduler:
    """
    Drives refresh -> fetch -> normalize -> aggregate -> report.

    Usage:
        scheduler = CycleScheduler(merger, fetcher, rate_client, on_report=print_report)
        await scheduler.run()
    """

    def __init__(
        self,
        merger: RegistryMerger,
        fetcher: BatchFetcher,
        rate_client: CoinMarketCapClient,
        normalizer: Optional[PriceNormalizer] = None,
        cooldown_seconds: float = 60.0,
        policy: CyclePolicy = CyclePolicy.SINGLE,
        stop_signal: Optional[StopSignal] = None,
        on_report: Optional[ReportCallback] = None,
    ):
        self._merger = merger
        self._fetcher = fetcher
        self._rate_client = rate_client
        self._normalizer = normalizer or PriceNormalizer()
        self._cooldown_seconds = max(0.0, cooldown_seconds)
        self._policy = policy
        self._stop_signal = stop_signal or StopSignal()
        self._on_report = on_report

        self._state = CycleState.IDLE
        self._cycle_number = 0
        self._last_report: Optional[CycleReport] = None
        self._transitions: List[StateChange] = []

    # --------------------------------------------------------
    # Properties
    # --------------------------------------------------------

    @property
    def state(self) -> CycleState:
        return self._state

    @property
    def policy(self) -> CyclePolicy:
        return self._policy

    @property
    def stop_signal(self) -> StopSignal:
        return self._stop_signal

    @property
    def cycle_number(self) -> int:
        """Number of cycles started so far."""
        return self._cycle_number

    @property
    def last_report(self) -> Optional[CycleReport]:
        return self._last_report

    @property
    def transitions(self) -> List[StateChange]:
        return list(self._transitions)

    # --------------------------------------------------------
    # State
    # --------------------------------------------------------

    def _transition(self, to_state: CycleState) -> None:
        if not is_valid_transition(self._state, to_state):
            raise StateTransitionError(self._state.value, to_state.value)
        self._transitions.append(StateChange.now(self._state, to_state, self._cycle_number))
        logger.debug(f"[scheduler] {self._state.value} -> {to_state.value}")
        self._state = to_state

    def _force_stopped(self) -> None:
        if self._state != CycleState.STOPPED:
            self._transition(CycleState.STOPPED)

    def request_stop(self, reason: str = "requested") -> None:
        self._stop_signal.set(reason)

    # --------------------------------------------------------
    # Main Loop
    # --------------------------------------------------------

    async def run(self) -> None:
        """
        Run cycles until the policy or a stop request ends the loop.

        Raises:
            CycleError: on any unexpected failure inside a cycle
        """
        logger.info(
            f"[scheduler] Starting | policy={self._policy.value} "
            f"cooldown={self._cooldown_seconds}s"
        )

        try:
            while not self._stop_signal.is_set:
                await self.run_cycle()

                if self._policy == CyclePolicy.SINGLE:
                    self._stop_signal.set("single cycle completed")
                    break

                if await self._cool_down():
                    break

                self._transition(CycleState.IDLE)

        except asyncio.CancelledError:
            logger.info("[scheduler] Cancelled")
            self._force_stopped()
            raise
        except CycleError:
            self._force_stopped()
            raise
        except Exception as e:
            logger.error(f"[scheduler] Fatal error in cycle {self._cycle_number}: {e}", exc_info=True)
            phase = self._state.value
            self._force_stopped()
            raise CycleError(
                message=f"Cycle {self._cycle_number} failed: {e}",
                cycle_number=self._cycle_number,
                phase=phase,
                cause=e,
            ) from e

        self._force_stopped()
        logger.info(
            f"[scheduler] Stopped after {self._cycle_number} cycle(s) "
            f"({self._stop_signal.reason})"
        )

    async def _cool_down(self) -> bool:
        """Wait out the cooldown; True if a stop was requested meanwhile."""
        if self._cooldown_seconds <= 0:
            return self._stop_signal.is_set
        logger.info(f"[scheduler] Cooling down for {self._cooldown_seconds}s")
        return await self._stop_signal.wait(timeout=self._cooldown_seconds)

    async def run_cycle(self) -> CycleReport:
        """
        Run one full cycle and emit its report.

        Leaves the scheduler in COOLING_DOWN.
        """
        self._cycle_number += 1
        started_at = datetime.now(timezone.utc)
        logger.info(f"[scheduler] Cycle {self._cycle_number} started")

        self._transition(CycleState.REFRESHING_REGISTRIES)
        snapshot = await self._merger.refresh()

        rate_quote = await self._rate_client.get_quote(NATIVE_SYMBOL, REFERENCE_SYMBOL)
        if rate_quote is None:
            logger.error(
                f"[scheduler] No {NATIVE_SYMBOL}/{REFERENCE_SYMBOL} exchange rate, "
                f"skipping cycle {self._cycle_number}"
            )
            self._transition(CycleState.REPORTING)
            report = CycleReport.aborted_report(
                cycle_number=self._cycle_number,
                started_at=started_at,
                reason="exchange rate unavailable",
            )
            await self._emit(report)
            self._transition(CycleState.COOLING_DOWN)
            return report

        exchange_rate = rate_quote.price
        logger.info(
            f"[scheduler] {NATIVE_SYMBOL} price: "
            f"{format_exchange_rate(exchange_rate)} {REFERENCE_SYMBOL}"
        )

        self._transition(CycleState.FETCHING)
        batch = await self._fetcher.fetch_all(snapshot, self._stop_signal)

        self._transition(CycleState.AGGREGATING)
        aggregator = RegionalAggregator()
        for quote in batch.quotes:
            normalized = self._normalizer.normalize(quote, exchange_rate)
            if normalized is not None:
                aggregator.add(normalized)
        buckets = aggregator.finalize()

        self._transition(CycleState.REPORTING)
        report = CycleReport(
            cycle_number=self._cycle_number,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
            reference_currency_price=format_exchange_rate(exchange_rate),
            buckets=buckets,
            providers=tuple(aggregator.records),
            cancelled=batch.cancelled,
            outcome_counts=batch.count_by_status(),
        )
        await self._emit(report)
        self._transition(CycleState.COOLING_DOWN)
        return report

    async def _emit(self, report: CycleReport) -> None:
        self._last_report = report

        if report.aborted:
            logger.info(f"[scheduler] Cycle {report.cycle_number} aborted: {report.abort_reason}")
        else:
            for name, bucket in report.buckets.items():
                logger.info(
                    f"[scheduler] {name}: {format_decimal(bucket.price, AVERAGE_PRICE_PLACES)} "
                    f"{REFERENCE_SYMBOL}/TiB/month ({bucket.count} miners)"
                )
            logger.info(f"[scheduler] {report.provider_count} miners priced")
            if report.cancelled:
                logger.warning(
                    f"[scheduler] Cycle {report.cycle_number} report is partial: "
                    f"{report.outcome_counts.get('cancelled', 0)} miners not fetched "
                    f"({self._stop_signal.reason})"
                )

        if self._on_report is not None:
            result = self._on_report(report)
            if inspect.isawaitable(result):
                await result

    # --------------------------------------------------------
    # Shutdown
    # --------------------------------------------------------

    async def run_with_grace(self, grace_seconds: float) -> bool:
        """
        Run until done; once a stop is requested, allow ``grace_seconds``
        for the current wave to settle before cancelling.

        Returns:
            True if the run had to be cancelled
        """
        run_task = asyncio.create_task(self.run())
        stop_task = asyncio.create_task(self._stop_signal.wait())

        try:
            await asyncio.wait({run_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)

            if not run_task.done():
                try:
                    await asyncio.wait_for(asyncio.shield(run_task), timeout=grace_seconds)
                except asyncio.TimeoutError:
                    logger.warning(
                        f"[scheduler] Grace period of {grace_seconds}s elapsed, forcing shutdown"
                    )
                    run_task.cancel()
                    try:
                        await run_task
                    except asyncio.CancelledError:
                        pass
                    return True

            # Propagates a fatal CycleError
            run_task.result()
            return False
        finally:
            if not stop_task.done():
                stop_task.cancel()
                await asyncio.gather(stop_task, return_exceptions=True)

    async def close(self) -> None:
        """Close every upstream client."""
        await self._merger.close()
        await self._fetcher.close()
        await self._rate_client.close()

    # --------------------------------------------------------
    # Signal Handlers
    # --------------------------------------------------------

    def install_signal_handlers(self) -> None:
        """Install SIGINT/SIGTERM handlers that request a stop."""
        if sys.platform == "win32":
            signal.signal(signal.SIGINT, self._signal_handler)
            return

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._on_signal, sig)

    def restore_signal_handlers(self) -> None:
        """Remove the handlers installed by install_signal_handlers."""
        if sys.platform == "win32":
            signal.signal(signal.SIGINT, signal.default_int_handler)
            return

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.remove_signal_handler(sig)

    def _on_signal(self, sig: signal.Signals) -> None:
        logger.info(f"[scheduler] Received signal {sig.name}")
        self.request_stop(f"signal {sig.name}")

    def _signal_handler(self, signum: int, frame: Any) -> None:
        """Synchronous signal handler (Windows)."""
        logger.info(f"[scheduler] Received signal {signum}")
        self.request_stop(f"signal {signum}")

    # --------------------------------------------------------
    # Status
    # --------------------------------------------------------

    def get_status(self) -> Dict[str, Any]:
        return {
            "state": self._state.value,
            "policy": self._policy.value,
            "cycle_number": self._cycle_number,
            "stop_requested": self._stop_signal.is_set,
            "stop_reason": self._stop_signal.reason,
            "last_report_aborted": self._last_report.aborted if self._last_report else None,
        }


# ============================================================
# EXPORTS
# ============================================================

__all__ = [
    "CycleScheduler",
    "ReportCallback",
    "setup_logging",
]
