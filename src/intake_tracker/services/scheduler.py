"""Day-boundary scheduler that archives stale intake aggregates."""

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from intake_tracker.domain.errors import ConflictError, StorageError
from intake_tracker.domain.intake import ArchivalRecord
from intake_tracker.services.intake import IntakeService

_logger = logging.getLogger(__name__)


class SchedulerState(Enum):
    """Scheduler lifecycle state."""

    IDLE = "idle"
    ARCHIVING = "archiving"


class AlertSink(Protocol):
    """Operator channel for archival failures that need attention."""

    def alert(self, message: str, *, owner_id: str, error: Exception) -> None:
        """Report a failure for an owner."""


@dataclass
class LoggingAlertSink(AlertSink):
    """Alert sink that writes critical log records."""

    logger_name: str = "intake_tracker.alerts"

    def alert(self, message: str, *, owner_id: str, error: Exception) -> None:
        logging.getLogger(self.logger_name).critical(
            "%s (owner_id=%s): %s", message, owner_id, error
        )


@dataclass
class DailyResetScheduler:
    """Moves each owner's finished day into the archive.

    Every tick compares the owners' aggregate days with the current intake
    day. Owners whose day has passed are cut over one at a time; a failure for
    one owner leaves their aggregate in place for the next tick and does not
    stop the others.
    """

    intake_service: IntakeService
    alert_sink: AlertSink = field(default_factory=LoggingAlertSink)
    poll_interval_seconds: float = 60.0
    state: SchedulerState = SchedulerState.IDLE
    _task: asyncio.Task[None] | None = field(default=None, init=False, repr=False)

    async def tick(self) -> list[ArchivalRecord]:
        """Run one boundary check and return the records archived."""
        today = self.intake_service.today()
        owners = self.intake_service.due_owners(today)
        if not owners:
            return []

        self.state = SchedulerState.ARCHIVING
        archived: list[ArchivalRecord] = []
        failed = 0
        try:
            for owner_id in owners:
                try:
                    record = await self.intake_service.roll_over(owner_id, today)
                except ConflictError as exc:
                    failed += 1
                    self.alert_sink.alert(
                        "Archived day conflicts with stored record",
                        owner_id=owner_id,
                        error=exc,
                    )
                    continue
                except StorageError as exc:
                    failed += 1
                    self.alert_sink.alert(
                        "Daily archival failed after retries",
                        owner_id=owner_id,
                        error=exc,
                    )
                    continue
                if record is not None:
                    archived.append(record)
        finally:
            self.state = SchedulerState.IDLE

        _logger.info(
            "Daily reset for %s: %s archived, %s failed, %s owners due",
            today.isoformat(),
            len(archived),
            failed,
            len(owners),
        )
        return archived

    async def run(self) -> None:
        """Tick forever, sleeping between checks."""
        while True:
            try:
                await self.tick()
            except Exception:
                _logger.exception("Daily reset tick failed")
            await asyncio.sleep(self.poll_interval_seconds)

    def start(self) -> None:
        """Start the background loop on the running event loop."""
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self.run())
        _logger.info(
            "Daily reset scheduler started (poll every %ss)",
            self.poll_interval_seconds,
        )

    async def stop(self) -> None:
        """Cancel the background loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
