"""Supabase repository for archived intake days."""

import logging
from dataclasses import dataclass
from datetime import date

from postgrest import APIError
from supabase import Client

from intake_tracker.adapters.supabase_queries import execute
from intake_tracker.domain.errors import ConflictError, StorageError
from intake_tracker.domain.intake import ArchivalRecord
from intake_tracker.domain.serialization import (
    entry_to_dict,
    record_from_row,
    totals_to_dict,
)
from intake_tracker.services.intake import ArchivalStore

_logger = logging.getLogger(__name__)

_COLUMNS = "owner_id, day, entries, totals, archived_at"


@dataclass
class SupabaseArchivalStore(ArchivalStore):
    """Supabase implementation keyed by (owner_id, day)."""

    client: Client
    table_name: str = "intake_archives"

    def put(self, record: ArchivalRecord) -> None:
        """Insert a record unless an identical one is already stored."""
        existing = self.get(record.owner_id, record.day)
        if existing is not None:
            _ensure_identical(existing, record)
            return
        try:
            execute(
                self.client.table(self.table_name).insert(
                    {
                        "owner_id": record.owner_id,
                        "day": record.day.isoformat(),
                        "entries": [entry_to_dict(entry) for entry in record.entries],
                        "totals": totals_to_dict(record.totals),
                        "archived_at": record.archived_at.isoformat(),
                    }
                ),
                "insert archive",
            )
        except APIError as exc:
            # Another writer stored the day between our read and insert.
            stored = self.get(record.owner_id, record.day)
            if stored is None:
                raise StorageError(f"Supabase insert archive failed: {exc}") from exc
            _ensure_identical(stored, record)

    def get(self, owner_id: str, day: date) -> ArchivalRecord | None:
        """Return the archived record for a day."""
        response = execute(
            self.client.table(self.table_name)
            .select(_COLUMNS)
            .eq("owner_id", owner_id)
            .eq("day", day.isoformat())
            .limit(1),
            "get archive",
        )
        if not response.data:
            return None
        return record_from_row(response.data[0])

    def list_dates(self, owner_id: str) -> list[date]:
        """Return archived days, most recent first."""
        response = execute(
            self.client.table(self.table_name)
            .select("day")
            .eq("owner_id", owner_id)
            .order("day", desc=True),
            "list archive dates",
        )
        return [date.fromisoformat(str(row["day"])) for row in response.data or []]

    def list_range(self, owner_id: str, start: date, end: date) -> list[ArchivalRecord]:
        """Return archived records between two days, inclusive."""
        response = execute(
            self.client.table(self.table_name)
            .select(_COLUMNS)
            .eq("owner_id", owner_id)
            .gte("day", start.isoformat())
            .lte("day", end.isoformat())
            .order("day", desc=False),
            "list archive range",
        )
        return [record_from_row(row) for row in response.data or []]


def _ensure_identical(stored: ArchivalRecord, incoming: ArchivalRecord) -> None:
    if stored != incoming:
        raise ConflictError(
            f"Archive for {incoming.owner_id} on {incoming.day} differs from stored"
        )
    _logger.info(
        "Archive already stored, skipping",
        extra={"owner_id": incoming.owner_id, "day": incoming.day.isoformat()},
    )
