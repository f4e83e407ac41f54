"""JSON-ready conversions for intake models."""

from datetime import date, datetime

from intake_tracker.domain.intake import (
    ArchivalRecord,
    DailyAggregate,
    FoodEntryRecord,
    MacroTotals,
)
from intake_tracker.domain.stats import PeriodSummary


def totals_to_dict(totals: MacroTotals) -> dict[str, float]:
    return {
        "calories": totals.calories,
        "protein_g": totals.protein_g,
        "carbs_g": totals.carbs_g,
        "fat_g": totals.fat_g,
    }


def entry_to_dict(entry: FoodEntryRecord) -> dict[str, object]:
    return {
        "id": entry.id,
        "owner_id": entry.owner_id,
        "name": entry.name,
        "calories": entry.calories,
        "protein_g": entry.protein_g,
        "carbs_g": entry.carbs_g,
        "fat_g": entry.fat_g,
        "serving_size": entry.serving_size,
        "health_score": entry.health_score,
        "analysis_type": entry.analysis_type,
        "recommendations": entry.recommendations,
        "image": entry.image,
        "metadata": entry.metadata,
        "added_at": entry.added_at.isoformat(),
    }


def entry_from_dict(row: dict[str, object]) -> FoodEntryRecord:
    health_score = row.get("health_score")
    return FoodEntryRecord(
        id=str(row["id"]),
        owner_id=str(row["owner_id"]),
        name=str(row.get("name", "")),
        calories=float(row.get("calories", 0.0)),
        protein_g=float(row.get("protein_g", 0.0)),
        carbs_g=float(row.get("carbs_g", 0.0)),
        fat_g=float(row.get("fat_g", 0.0)),
        serving_size=str(row.get("serving_size", "")),
        added_at=datetime.fromisoformat(str(row["added_at"])),
        health_score=int(health_score) if health_score is not None else None,
        analysis_type=str(row.get("analysis_type") or "manual"),
        recommendations=str(row.get("recommendations") or ""),
        image=row.get("image"),
        metadata=dict(row.get("metadata") or {}),
    )


def aggregate_to_dict(aggregate: DailyAggregate) -> dict[str, object]:
    return {
        "owner_id": aggregate.owner_id,
        "date": aggregate.day.isoformat(),
        "entries": [entry_to_dict(entry) for entry in aggregate.entries],
        "totals": totals_to_dict(aggregate.totals),
    }


def aggregate_from_row(row: dict[str, object]) -> DailyAggregate:
    return DailyAggregate(
        owner_id=str(row["owner_id"]),
        day=date.fromisoformat(str(row["day"])),
        entries=tuple(entry_from_dict(item) for item in row.get("entries") or []),
    )


def record_to_dict(record: ArchivalRecord) -> dict[str, object]:
    return {
        "owner_id": record.owner_id,
        "date": record.day.isoformat(),
        "entries": [entry_to_dict(entry) for entry in record.entries],
        "totals": totals_to_dict(record.totals),
        "archived_at": record.archived_at.isoformat(),
    }


def record_from_row(row: dict[str, object]) -> ArchivalRecord:
    totals = row.get("totals") or {}
    return ArchivalRecord(
        owner_id=str(row["owner_id"]),
        day=date.fromisoformat(str(row["day"])),
        entries=tuple(entry_from_dict(item) for item in row.get("entries") or []),
        totals=MacroTotals(
            calories=float(totals.get("calories", 0.0)),
            protein_g=float(totals.get("protein_g", 0.0)),
            carbs_g=float(totals.get("carbs_g", 0.0)),
            fat_g=float(totals.get("fat_g", 0.0)),
        ),
        archived_at=datetime.fromisoformat(str(row["archived_at"])),
    )


def period_to_dict(summary: PeriodSummary) -> dict[str, object]:
    return {
        "start": summary.start.isoformat(),
        "end": summary.end.isoformat(),
        "totals": totals_to_dict(summary.totals),
        "avg_calories": summary.avg_calories,
        "avg_protein_g": summary.avg_protein_g,
        "avg_carbs_g": summary.avg_carbs_g,
        "avg_fat_g": summary.avg_fat_g,
        "daily": [
            {
                "date": day.day.isoformat(),
                "entry_count": day.entry_count,
                **totals_to_dict(day.totals),
            }
            for day in summary.daily
        ],
    }
