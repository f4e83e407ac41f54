"""In-memory intake stores for local runs and tests."""

from dataclasses import dataclass, field
from datetime import date

from intake_tracker.domain.errors import ConflictError
from intake_tracker.domain.intake import ArchivalRecord, DailyAggregate
from intake_tracker.services.intake import AggregateStore, ArchivalStore


@dataclass
class InMemoryAggregateStore(AggregateStore):
    """Aggregate store backed by a dict keyed by owner."""

    aggregates: dict[str, DailyAggregate] = field(default_factory=dict)

    def get(self, owner_id: str) -> DailyAggregate | None:
        return self.aggregates.get(owner_id)

    def save(self, aggregate: DailyAggregate) -> None:
        self.aggregates[aggregate.owner_id] = aggregate

    def list_owners_before(self, day: date) -> list[str]:
        return [
            owner_id
            for owner_id, aggregate in self.aggregates.items()
            if aggregate.day < day
        ]


@dataclass
class InMemoryArchivalStore(ArchivalStore):
    """Archival store backed by a dict keyed by (owner, day)."""

    records: dict[tuple[str, date], ArchivalRecord] = field(default_factory=dict)

    def put(self, record: ArchivalRecord) -> None:
        key = (record.owner_id, record.day)
        existing = self.records.get(key)
        if existing is None:
            self.records[key] = record
            return
        if existing != record:
            raise ConflictError(
                f"Archive for {record.owner_id} on {record.day} differs from stored"
            )

    def get(self, owner_id: str, day: date) -> ArchivalRecord | None:
        return self.records.get((owner_id, day))

    def list_dates(self, owner_id: str) -> list[date]:
        return sorted(
            (day for owner, day in self.records if owner == owner_id), reverse=True
        )

    def list_range(self, owner_id: str, start: date, end: date) -> list[ArchivalRecord]:
        return sorted(
            (
                record
                for (owner, day), record in self.records.items()
                if owner == owner_id and start <= day <= end
            ),
            key=lambda record: record.day,
        )
