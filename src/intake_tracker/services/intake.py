"""Daily intake aggregation and archival service."""

import asyncio
import logging
import math
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from typing import Protocol, TypeVar
from uuid import uuid4

from intake_tracker.domain.analysis import FoodAnalysis
from intake_tracker.domain.errors import StorageError, ValidationError
from intake_tracker.domain.intake import (
    ArchivalRecord,
    DailyAggregate,
    FoodEntryRecord,
    MacroTotals,
    intake_day,
)
from intake_tracker.domain.stats import DailyTotals, PeriodSummary
from intake_tracker.services.analysis import food_data_from_analysis

_logger = logging.getLogger(__name__)

_AMOUNT = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*[a-zA-Z%]*\s*$")
_FIELD_KEYS = {
    "calories": ("calories",),
    "protein_g": ("protein_g", "proteinGrams", "protein"),
    "carbs_g": ("carbs_g", "carbsGrams", "carbs"),
    "fat_g": ("fat_g", "fatGrams", "fat"),
    "serving_size": ("serving_size", "servingSize"),
    "health_score": ("health_score", "healthScore"),
    "analysis_type": ("analysis_type", "analysisType"),
}
_MACRO_FIELDS = ("calories", "protein_g", "carbs_g", "fat_g")

T = TypeVar("T")


class AggregateStore(Protocol):
    """Persistence interface for live daily aggregates, one per owner."""

    def get(self, owner_id: str) -> DailyAggregate | None:
        """Return the owner's live aggregate, if any."""

    def save(self, aggregate: DailyAggregate) -> None:
        """Create or replace the owner's live aggregate."""

    def list_owners_before(self, day: date) -> list[str]:
        """Return owners whose live aggregate belongs to a day before ``day``."""


class ArchivalStore(Protocol):
    """Persistence interface for finalized days."""

    def put(self, record: ArchivalRecord) -> None:
        """Store a record; identical re-puts succeed, different ones conflict."""

    def get(self, owner_id: str, day: date) -> ArchivalRecord | None:
        """Return the archived record for a day, if present."""

    def list_dates(self, owner_id: str) -> list[date]:
        """Return archived days, most recent first."""

    def list_range(self, owner_id: str, start: date, end: date) -> list[ArchivalRecord]:
        """Return archived records with start <= day <= end."""


class Clock(Protocol):
    """Source of the current time."""

    def now(self) -> datetime:
        """Return the current tz-aware time."""


@dataclass
class SystemClock(Clock):
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(tz=UTC)


class OwnerLocks:
    """Per-owner asyncio locks; owners never contend with each other."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def for_owner(self, owner_id: str) -> asyncio.Lock:
        lock = self._locks.get(owner_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[owner_id] = lock
        return lock


@dataclass
class IntakeService:
    """Facade for adding, reading and archiving daily intake.

    All mutations of one owner's aggregate run under that owner's lock. The
    work done while holding a lock is synchronous, so cancelling a caller can
    only interrupt it while it waits for the lock.
    """

    aggregate_store: AggregateStore
    archival_store: ArchivalStore
    clock: Clock = field(default_factory=SystemClock)
    timezone_name: str = "UTC"
    day_start_hour: int = 0
    max_attempts: int = 3
    retry_delay_seconds: float = 1.0
    locks: OwnerLocks = field(default_factory=OwnerLocks)

    def today(self) -> date:
        """Return the current intake day in the configured timezone."""
        return intake_day(self.clock.now(), self.timezone_name, self.day_start_hour)

    async def add_entry(
        self, owner_id: str, food_data: Mapping[str, object]
    ) -> FoodEntryRecord:
        """Validate food data and append it to today's aggregate."""
        _require_owner(owner_id)
        async with self.locks.for_owner(owner_id):
            aggregate = self._current_locked(owner_id)
            entry = build_entry(owner_id, food_data, added_at=self.clock.now())
            self.aggregate_store.save(aggregate.add_entry(entry))
        _logger.info(
            "Added intake entry", extra={"owner_id": owner_id, "entry_id": entry.id}
        )
        return entry

    async def add_analysis(
        self, owner_id: str, analysis: FoodAnalysis, image: str | None = None
    ) -> FoodEntryRecord:
        """Store an AI analysis result as an entry in today's aggregate."""
        return await self.add_entry(owner_id, food_data_from_analysis(analysis, image))

    async def remove_entry(self, owner_id: str, entry_id: str) -> None:
        """Remove an entry from today's aggregate; unknown ids are ignored."""
        _require_owner(owner_id)
        async with self.locks.for_owner(owner_id):
            aggregate = self._current_locked(owner_id)
            updated = aggregate.remove_entry(entry_id)
            if updated is not aggregate:
                self.aggregate_store.save(updated)

    async def get_today(self, owner_id: str) -> DailyAggregate:
        """Return today's aggregate, empty when nothing is logged yet."""
        _require_owner(owner_id)
        today = self.today()
        aggregate = self.aggregate_store.get(owner_id)
        if aggregate is None or aggregate.day < today:
            return DailyAggregate(owner_id=owner_id, day=today)
        return aggregate

    async def get_archived(self, owner_id: str, day: date) -> ArchivalRecord | None:
        """Return the archived record for a day, or None."""
        _require_owner(owner_id)
        return self.archival_store.get(owner_id, day)

    async def list_archive_dates(self, owner_id: str) -> list[date]:
        """Return archived days, most recent first."""
        _require_owner(owner_id)
        return self.archival_store.list_dates(owner_id)

    async def manual_reset(self, owner_id: str) -> ArchivalRecord | None:
        """Archive the owner's aggregate now and move them to the next day.

        Entries logged after a reset belong to the following intake day, so an
        archived day is never written twice.

        Returns the archived record, or None when there was nothing to archive.
        Raises StorageError once every attempt has failed.
        """
        _require_owner(owner_id)

        def reset() -> ArchivalRecord | None:
            aggregate = self.aggregate_store.get(owner_id)
            if aggregate is None:
                return None
            today = self.today()
            if aggregate.is_empty:
                if aggregate.day < today:
                    self.aggregate_store.save(aggregate.clear(today))
                return None
            next_day = max(aggregate.day + timedelta(days=1), today)
            return self._cutover_locked(aggregate, next_day)

        record = await self._locked_with_retry(owner_id, reset, action="manual_reset")
        if record is not None:
            _logger.info(
                "Manual reset archived intake",
                extra={"owner_id": owner_id, "day": record.day.isoformat()},
            )
        return record

    def due_owners(self, today: date) -> list[str]:
        """Return owners whose aggregate belongs to an earlier day."""
        return self.aggregate_store.list_owners_before(today)

    async def roll_over(self, owner_id: str, today: date) -> ArchivalRecord | None:
        """Archive a stale aggregate and replace it with an empty one for today."""

        def cutover() -> ArchivalRecord | None:
            aggregate = self.aggregate_store.get(owner_id)
            if aggregate is None or aggregate.day >= today:
                return None
            return self._cutover_locked(aggregate, today)

        return await self._locked_with_retry(owner_id, cutover, action="roll_over")

    async def get_week(self, owner_id: str) -> PeriodSummary:
        """Return totals for the last seven days, ending today."""
        today = self.today()
        return await self._period(owner_id, today - timedelta(days=6), today)

    async def get_month(self, owner_id: str) -> PeriodSummary:
        """Return month-to-date totals."""
        today = self.today()
        return await self._period(owner_id, today.replace(day=1), today)

    async def _period(self, owner_id: str, start: date, end: date) -> PeriodSummary:
        _require_owner(owner_id)
        by_day: dict[date, DailyTotals] = {
            record.day: DailyTotals(
                day=record.day, totals=record.totals, entry_count=len(record.entries)
            )
            for record in self.archival_store.list_range(owner_id, start, end)
        }
        current = await self.get_today(owner_id)
        if start <= current.day <= end and not current.is_empty:
            by_day[current.day] = DailyTotals(
                day=current.day,
                totals=current.totals,
                entry_count=len(current.entries),
            )
        return _aggregate_period(start, end, by_day)

    def _current_locked(self, owner_id: str) -> DailyAggregate:
        """Return today's aggregate, archiving a stale one first."""
        today = self.today()
        aggregate = self.aggregate_store.get(owner_id)
        if aggregate is None:
            return DailyAggregate(owner_id=owner_id, day=today)
        if aggregate.day < today:
            self._cutover_locked(aggregate, today)
            return DailyAggregate(owner_id=owner_id, day=today)
        return aggregate

    def _cutover_locked(
        self, aggregate: DailyAggregate, new_day: date
    ) -> ArchivalRecord | None:
        """Put a snapshot, then clear; the aggregate survives a failed put."""
        record = None
        if not aggregate.is_empty:
            record = aggregate.snapshot(archived_at=self.clock.now())
            self.archival_store.put(record)
        self.aggregate_store.save(aggregate.clear(new_day))
        return record

    async def _locked_with_retry(
        self, owner_id: str, func: Callable[[], T], *, action: str
    ) -> T:
        """Run func under the owner's lock, retrying storage failures.

        The lock is released while backing off between attempts.
        """
        attempt = 0
        while True:
            async with self.locks.for_owner(owner_id):
                try:
                    return func()
                except StorageError as exc:
                    attempt += 1
                    if attempt >= self.max_attempts:
                        _logger.error(
                            "Intake %s failed after %s attempts: %s",
                            action,
                            attempt,
                            exc,
                            extra={"owner_id": owner_id},
                        )
                        raise
                    _logger.warning(
                        "Intake %s failed (attempt %s/%s): %s",
                        action,
                        attempt,
                        self.max_attempts,
                        exc,
                        extra={"owner_id": owner_id},
                    )
            await asyncio.sleep(self.retry_delay_seconds * 2 ** (attempt - 1))


def build_entry(
    owner_id: str, food_data: Mapping[str, object], added_at: datetime
) -> FoodEntryRecord:
    """Create a food entry from loosely typed input, defaulting missing macros."""
    macros = {
        name: _to_macro(_lookup(food_data, name), name) for name in _MACRO_FIELDS
    }
    metadata = food_data.get("metadata")
    image = food_data.get("image")
    return FoodEntryRecord(
        id=str(uuid4()),
        owner_id=owner_id,
        name=_to_text(food_data.get("name")) or "Food Item",
        serving_size=_to_text(_lookup(food_data, "serving_size")) or "1 serving",
        added_at=added_at,
        health_score=_to_health_score(_lookup(food_data, "health_score")),
        analysis_type=_to_text(_lookup(food_data, "analysis_type")) or "manual",
        recommendations=_to_text(food_data.get("recommendations")),
        image=str(image) if image else None,
        metadata=dict(metadata) if isinstance(metadata, Mapping) else {},
        **macros,
    )


def _aggregate_period(
    start: date, end: date, by_day: dict[date, DailyTotals]
) -> PeriodSummary:
    daily = []
    day = start
    while day <= end:
        daily.append(
            by_day.get(day, DailyTotals(day=day, totals=MacroTotals(), entry_count=0))
        )
        day += timedelta(days=1)

    total = MacroTotals()
    for entry in daily:
        total = MacroTotals(
            calories=total.calories + entry.totals.calories,
            protein_g=total.protein_g + entry.totals.protein_g,
            carbs_g=total.carbs_g + entry.totals.carbs_g,
            fat_g=total.fat_g + entry.totals.fat_g,
        )
    total_days = max(len(daily), 1)
    return PeriodSummary(
        start=start,
        end=end,
        daily=daily,
        totals=total,
        avg_calories=total.calories / total_days,
        avg_protein_g=total.protein_g / total_days,
        avg_carbs_g=total.carbs_g / total_days,
        avg_fat_g=total.fat_g / total_days,
    )


def _lookup(food_data: Mapping[str, object], name: str) -> object:
    for key in _FIELD_KEYS[name]:
        value = food_data.get(key)
        if value is not None:
            return value
    return None


def _require_owner(owner_id: str) -> None:
    if not owner_id or not owner_id.strip():
        raise ValidationError("owner_id is required")


def _to_macro(value: object, name: str) -> float:
    if value is None or value == "":
        return 0.0
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")
    if isinstance(value, str):
        match = _AMOUNT.match(value)
        if not match:
            raise ValidationError(f"{name} must be a number, got {value!r}")
        value = match.group(1)
    elif not isinstance(value, int | float):
        raise ValidationError(f"{name} must be a number")
    try:
        amount = float(value)
    except OverflowError as exc:
        raise ValidationError(f"{name} is out of range") from exc
    if not math.isfinite(amount) or amount < 0:
        raise ValidationError(f"{name} must be a non-negative number")
    return amount


def _to_health_score(value: object) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError("health_score must be a number")
    if not isinstance(value, int | float | str):
        raise ValidationError("health_score must be a number")
    try:
        return round(float(value))
    except (ValueError, OverflowError) as exc:
        raise ValidationError("health_score must be a number") from exc


def _to_text(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()
