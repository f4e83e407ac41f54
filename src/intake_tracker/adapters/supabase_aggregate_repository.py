"""Supabase repository for live daily aggregates."""

from dataclasses import dataclass
from datetime import UTC, date, datetime

from supabase import Client

from intake_tracker.adapters.supabase_queries import execute
from intake_tracker.domain.intake import DailyAggregate
from intake_tracker.domain.serialization import (
    aggregate_from_row,
    entry_to_dict,
    totals_to_dict,
)
from intake_tracker.services.intake import AggregateStore


@dataclass
class SupabaseAggregateStore(AggregateStore):
    """Supabase implementation storing one aggregate row per owner."""

    client: Client
    table_name: str = "intake_aggregates"

    def get(self, owner_id: str) -> DailyAggregate | None:
        """Return the owner's live aggregate."""
        response = execute(
            self.client.table(self.table_name)
            .select("owner_id, day, entries")
            .eq("owner_id", owner_id)
            .limit(1),
            "get aggregate",
        )
        if not response.data:
            return None
        return aggregate_from_row(response.data[0])

    def save(self, aggregate: DailyAggregate) -> None:
        """Upsert the owner's aggregate row."""
        execute(
            self.client.table(self.table_name).upsert(
                {
                    "owner_id": aggregate.owner_id,
                    "day": aggregate.day.isoformat(),
                    "entries": [entry_to_dict(entry) for entry in aggregate.entries],
                    "totals": totals_to_dict(aggregate.totals),
                    "updated_at": datetime.now(tz=UTC).isoformat(),
                },
                on_conflict="owner_id",
            ),
            "save aggregate",
        )

    def list_owners_before(self, day: date) -> list[str]:
        """Return owners whose aggregate day is earlier than ``day``."""
        response = execute(
            self.client.table(self.table_name)
            .select("owner_id")
            .lt("day", day.isoformat()),
            "list stale aggregates",
        )
        return [str(row["owner_id"]) for row in response.data or []]
