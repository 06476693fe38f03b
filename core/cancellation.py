"""
Core Module - Cooperative cancellation.

A StopSignal is threaded through the cycle loop and the fetch waves.
It is only checked at phase boundaries; it never interrupts a request
that is already in flight.
"""

import asyncio
import logging
from typing import Optional


logger = logging.getLogger(__name__)


class StopSignal:
    """One-shot cooperative stop flag."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[str] = None

    @property
    def is_set(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def set(self, reason: str = "requested") -> None:
        """Request a stop. Later calls keep the first reason."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        logger.info(f"Stop requested: {reason}")

    async def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Sleep until the signal is set or ``timeout`` elapses.

        Returns:
            True if the signal is set
        """
        if timeout is None:
            await self._event.wait()
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            pass
        return self._event.is_set()

    def __repr__(self) -> str:
        return f"<StopSignal(set={self.is_set}, reason={self._reason})>"
