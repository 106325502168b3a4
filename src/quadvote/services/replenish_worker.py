"""Background sweep granting periodic replenishment to every due account.

Reads replenish lazily, so this worker only makes sure dormant accounts are
topped up on schedule. Each grant goes through the same conditional update as
the read path, so the sweep and concurrent reads never double-grant.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.orm import Session

from quadvote.core.settings import settings
from quadvote.db.session import SessionLocal
from quadvote.services.errors import StorageFailureError
from quadvote.services.ledger import CreditLedger
from quadvote.services.notifications import ChangeNotifier, get_notifier

logger = logging.getLogger(__name__)


@dataclass
class ReplenishSweepState:
    """Counters describing the worker's progress since start."""

    sweeps: int = 0
    granted: int = 0


class ReplenishWorker:
    """Periodically calls ``CreditLedger.replenish_all_due``."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        notifier: ChangeNotifier | None = None,
        interval_seconds: float | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._notifier = notifier
        self.interval = (
            settings.replenish_worker_interval_seconds
            if interval_seconds is None
            else interval_seconds
        )
        self.state = ReplenishSweepState()
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    async def start(self) -> None:
        """Start the background sweep loop."""
        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the loop and wait for the current sweep to finish."""
        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    def sweep_once(self) -> int:
        """Run one synchronous sweep and return the number of grants made."""
        with self._session_factory() as db:
            ledger = CreditLedger(db, self._notifier or get_notifier())
            granted = ledger.replenish_all_due()
        self.state.sweeps += 1
        self.state.granted += granted
        return granted

    async def _run(self) -> None:
        interval = max(0.1, float(self.interval))

        while not self._stopping.is_set():
            try:
                await asyncio.to_thread(self.sweep_once)
            except StorageFailureError as e:
                logger.warning("ReplenishWorker sweep failed: %s", e)
            except Exception:
                logger.error("ReplenishWorker sweep crashed", exc_info=True)

            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=interval)
            except TimeoutError:
                continue
