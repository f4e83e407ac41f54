"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from intake_tracker.adapters.memory_intake_repository import (
    InMemoryAggregateStore,
    InMemoryArchivalStore,
)
from intake_tracker.adapters.openai_analysis_client import OpenAIAnalysisClient
from intake_tracker.adapters.supabase_aggregate_repository import (
    SupabaseAggregateStore,
)
from intake_tracker.adapters.supabase_archive_repository import SupabaseArchivalStore
from intake_tracker.adapters.supabase_token_verifier import SupabaseTokenVerifier
from intake_tracker.config import Settings
from intake_tracker.services.analysis import FoodAnalysisService
from intake_tracker.services.auth import TokenVerifier
from intake_tracker.services.intake import (
    AggregateStore,
    ArchivalStore,
    IntakeService,
)
from intake_tracker.services.scheduler import DailyResetScheduler


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    token_verifier: TokenVerifier
    intake_service: IntakeService
    scheduler: DailyResetScheduler
    analysis_service: FoodAnalysisService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    aggregate_store: AggregateStore
    archival_store: ArchivalStore
    if resolved_settings.intake_backend == "memory":
        aggregate_store = InMemoryAggregateStore()
        archival_store = InMemoryArchivalStore()
    else:
        aggregate_store = SupabaseAggregateStore(supabase_client)
        archival_store = SupabaseArchivalStore(supabase_client)
    intake_service = IntakeService(
        aggregate_store=aggregate_store,
        archival_store=archival_store,
        timezone_name=resolved_settings.intake_timezone,
        day_start_hour=resolved_settings.intake_day_start_hour,
        max_attempts=resolved_settings.archive_max_attempts,
        retry_delay_seconds=resolved_settings.archive_retry_delay_seconds,
    )
    scheduler = DailyResetScheduler(
        intake_service=intake_service,
        poll_interval_seconds=resolved_settings.scheduler_poll_seconds,
    )
    analysis_client = OpenAIAnalysisClient.create(resolved_settings.openai_api_key)
    analysis_service = FoodAnalysisService(
        client=analysis_client,
        model=resolved_settings.openai_model,
    )

    async def close_resources() -> None:
        await analysis_client.close()

    return AppContainer(
        settings=resolved_settings,
        token_verifier=SupabaseTokenVerifier(supabase_client),
        intake_service=intake_service,
        scheduler=scheduler,
        analysis_service=analysis_service,
        close_resources=close_resources,
    )
