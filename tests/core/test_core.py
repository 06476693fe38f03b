"""
Tests for the core package.

============================================================
PURPOSE
============================================================
- StopSignal semantics (first reason wins, bounded wait)
- Exception hierarchy serialization
- Unit constants

============================================================
"""

import asyncio
from decimal import Decimal

import pytest

from core import (
    ConfigurationError,
    CycleError,
    IndexerError,
    InvalidConfigError,
    Severity,
    StateTransitionError,
    StopSignal,
)
from core.constants import (
    ATTO_PER_NATIVE,
    CAPACITY_MULTIPLIER,
    MAX_PRICE_NATIVE_PER_GIB_EPOCH,
)


# ============================================================
# STOP SIGNAL TESTS
# ============================================================

class TestStopSignal:
    """Tests for the cooperative stop signal."""

    @pytest.mark.asyncio
    async def test_initially_clear(self):
        stop = StopSignal()
        assert stop.is_set is False
        assert stop.reason is None

    @pytest.mark.asyncio
    async def test_first_reason_wins(self):
        stop = StopSignal()
        stop.set("signal SIGTERM")
        stop.set("signal SIGINT")
        assert stop.is_set is True
        assert stop.reason == "signal SIGTERM"

    @pytest.mark.asyncio
    async def test_wait_times_out_when_clear(self):
        stop = StopSignal()
        assert await stop.wait(timeout=0.01) is False

    @pytest.mark.asyncio
    async def test_wait_returns_early_when_set(self):
        stop = StopSignal()

        async def trigger():
            await asyncio.sleep(0.01)
            stop.set("test")

        asyncio.create_task(trigger())
        # Would take 5 seconds without the signal
        assert await stop.wait(timeout=5) is True

    @pytest.mark.asyncio
    async def test_wait_without_timeout(self):
        stop = StopSignal()
        stop.set()
        assert await stop.wait() is True
        assert stop.reason == "requested"


# ============================================================
# EXCEPTION TESTS
# ============================================================

class TestExceptions:
    """Tests for the application exception hierarchy."""

    def test_base_error_to_dict(self):
        error = IndexerError("boom", context={"cycle": 3})
        data = error.to_dict()
        assert data["type"] == "IndexerError"
        assert data["message"] == "boom"
        assert data["severity"] == Severity.MEDIUM.value
        assert data["context"] == {"cycle": 3}
        assert data["cause"] is None

    def test_cause_recorded_in_context(self):
        cause = ValueError("bad value")
        error = IndexerError("wrapped", cause=cause)
        assert error.context["cause_type"] == "ValueError"
        assert error.context["cause_message"] == "bad value"

    def test_invalid_config_error(self):
        error = InvalidConfigError("LOTUS_API_RPS", "ten", "expected int")
        assert isinstance(error, ConfigurationError)
        assert error.severity == Severity.HIGH
        assert error.context["config_key"] == "LOTUS_API_RPS"
        assert error.context["actual_value"] == "ten"
        assert "LOTUS_API_RPS" in error.message

    def test_state_transition_error(self):
        error = StateTransitionError("stopped", "idle")
        assert error.severity == Severity.CRITICAL
        assert error.from_state == "stopped"
        assert error.to_state == "idle"
        assert "stopped -> idle" in str(error)

    def test_cycle_error_log_format(self):
        error = CycleError("Cycle 2 failed", cycle_number=2, phase="fetching")
        line = error.to_log_format()
        assert line.startswith("[CRITICAL] CycleError: Cycle 2 failed")
        assert "cycle_number=2" in line
        assert "phase=fetching" in line


# ============================================================
# CONSTANTS TESTS
# ============================================================

class TestConstants:
    """Unit conversion constants."""

    def test_capacity_multiplier(self):
        # 1024 GiB per TiB, 86400 thirty-second epochs per 30 days
        assert CAPACITY_MULTIPLIER == Decimal(88473600)

    def test_atto_per_native(self):
        assert ATTO_PER_NATIVE == Decimal("1000000000000000000")

    def test_max_price_bound(self):
        assert MAX_PRICE_NATIVE_PER_GIB_EPOCH == Decimal("1E-7")
