"""Domain models for intake rollups."""

from dataclasses import dataclass
from datetime import date

from intake_tracker.domain.intake import MacroTotals


@dataclass(frozen=True)
class DailyTotals:
    """Totals for one calendar day."""

    day: date
    totals: MacroTotals
    entry_count: int


@dataclass(frozen=True)
class PeriodSummary:
    """Aggregated totals for a range of days."""

    start: date
    end: date
    daily: list[DailyTotals]
    totals: MacroTotals
    avg_calories: float
    avg_protein_g: float
    avg_carbs_g: float
    avg_fat_g: float
