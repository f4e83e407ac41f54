"""Domain models for daily intake tracking."""

import math
import re
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo

from intake_tracker.domain.errors import ValidationError

MAX_HEALTH_SCORE = 10
_DAY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class MacroTotals:
    """Summed macros for a set of food entries."""

    calories: float = 0.0
    protein_g: float = 0.0
    carbs_g: float = 0.0
    fat_g: float = 0.0


@dataclass(frozen=True)
class FoodEntryRecord:
    """A single logged food item."""

    id: str
    owner_id: str
    name: str
    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float
    serving_size: str
    added_at: datetime
    health_score: int | None = None
    analysis_type: str = "manual"
    recommendations: str = ""
    image: str | None = None
    metadata: dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class ArchivalRecord:
    """Immutable snapshot of one finished day.

    ``archived_at`` is informational and does not take part in equality, so two
    snapshots of the same day with the same entries compare equal.
    """

    owner_id: str
    day: date
    entries: tuple[FoodEntryRecord, ...]
    totals: MacroTotals
    archived_at: datetime = field(
        default_factory=lambda: datetime.now(tz=UTC), compare=False
    )


@dataclass(frozen=True)
class DailyAggregate:
    """Running food entries for one owner and one calendar day.

    Every mutation returns a new aggregate. Totals are always folded from the
    current entries and never tracked separately.
    """

    owner_id: str
    day: date
    entries: tuple[FoodEntryRecord, ...] = ()

    @property
    def totals(self) -> MacroTotals:
        """Return the sum of macros across current entries."""
        return sum_totals(self.entries)

    @property
    def is_empty(self) -> bool:
        """Return True when no entries are recorded."""
        return not self.entries

    def add_entry(self, entry: FoodEntryRecord) -> "DailyAggregate":
        """Return a copy with the entry appended.

        Only the owner is checked. Entries carry no day of their own: the
        service assigns the day, and after a manual reset ``added_at`` falls
        on the day before ``self.day``.
        """
        if entry.owner_id != self.owner_id:
            raise ValidationError(
                f"Entry owner {entry.owner_id!r} does not match {self.owner_id!r}"
            )
        validate_entry(entry)
        return replace(self, entries=(*self.entries, entry))

    def remove_entry(self, entry_id: str) -> "DailyAggregate":
        """Return a copy without the entry; unknown ids leave it unchanged."""
        remaining = tuple(entry for entry in self.entries if entry.id != entry_id)
        if len(remaining) == len(self.entries):
            return self
        return replace(self, entries=remaining)

    def snapshot(self, archived_at: datetime | None = None) -> ArchivalRecord:
        """Return an archival record of the current state."""
        return ArchivalRecord(
            owner_id=self.owner_id,
            day=self.day,
            entries=self.entries,
            totals=self.totals,
            archived_at=archived_at or datetime.now(tz=UTC),
        )

    def clear(self, day: date | None = None) -> "DailyAggregate":
        """Return an empty aggregate, for the next day unless one is given."""
        return DailyAggregate(
            owner_id=self.owner_id,
            day=day if day is not None else self.day + timedelta(days=1),
        )


def sum_totals(entries: Iterable[FoodEntryRecord]) -> MacroTotals:
    """Fold entry macros into totals."""
    total = MacroTotals()
    for entry in entries:
        total = MacroTotals(
            calories=total.calories + entry.calories,
            protein_g=total.protein_g + entry.protein_g,
            carbs_g=total.carbs_g + entry.carbs_g,
            fat_g=total.fat_g + entry.fat_g,
        )
    return total


def validate_entry(entry: FoodEntryRecord) -> None:
    """Raise ValidationError when an entry has invalid macros or score."""
    for name in ("calories", "protein_g", "carbs_g", "fat_g"):
        value = getattr(entry, name)
        if not math.isfinite(value) or value < 0:
            raise ValidationError(f"{name} must be a non-negative number")
    if entry.health_score is not None and not (
        0 <= entry.health_score <= MAX_HEALTH_SCORE
    ):
        raise ValidationError(f"health_score must be between 0 and {MAX_HEALTH_SCORE}")


def intake_day(now: datetime, timezone_name: str, day_start_hour: int = 0) -> date:
    """Return the intake day for an instant in the boundary timezone.

    Days start at ``day_start_hour`` local time, so with a start hour of 4 an
    entry logged at 02:00 still belongs to the previous day.
    """
    local = now.astimezone(ZoneInfo(timezone_name))
    return (local - timedelta(hours=day_start_hour)).date()


def parse_day(raw: str) -> date:
    """Parse a YYYY-MM-DD string."""
    if not _DAY_PATTERN.match(raw):
        raise ValidationError(f"Invalid date {raw!r}, expected YYYY-MM-DD")
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise ValidationError(f"Invalid date {raw!r}") from exc
