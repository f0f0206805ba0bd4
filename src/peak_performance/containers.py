"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from peak_performance.adapters.supabase_food_entry_repository import (
    SupabaseFoodEntryRepository,
)
from peak_performance.adapters.supabase_user_stats_repository import (
    SupabaseUserStatsRepository,
)
from peak_performance.adapters.supabase_workout_repository import (
    SupabaseWorkoutRepository,
)
from peak_performance.adapters.telegram_notifier import (
    HttpxTelegramNotifier,
    LoggingNotifier,
)
from peak_performance.config import Settings
from peak_performance.services.food_entries import FoodEntryService
from peak_performance.services.notifications import NotificationService
from peak_performance.services.session import TrackerSession
from peak_performance.services.stats import StatsService
from peak_performance.services.workouts import WorkoutService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    stats_service: StatsService
    food_entry_service: FoodEntryService
    workout_service: WorkoutService
    notification_service: NotificationService
    close_resources: Callable[[], Awaitable[None]]

    def open_session(
        self, user_id: str, timezone_name: str | None = None
    ) -> TrackerSession:
        """Create a tracker session for one signed-in user."""
        return TrackerSession(
            user_id=user_id,
            stats_service=self.stats_service,
            food_entry_service=self.food_entry_service,
            workout_service=self.workout_service,
            notification_service=self.notification_service,
            timezone_name=timezone_name or self.settings.default_timezone,
            default_calorie_goal=self.settings.default_calorie_intake_goal,
        )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    stats_repository = SupabaseUserStatsRepository(
        supabase_client,
        max_attempts=resolved_settings.stats_transaction_max_attempts,
    )
    stats_service = StatsService(stats_repository)
    food_entry_service = FoodEntryService(
        repository=SupabaseFoodEntryRepository(supabase_client),
        stats_service=stats_service,
    )
    workout_service = WorkoutService(
        repository=SupabaseWorkoutRepository(supabase_client),
        stats_service=stats_service,
    )
    if resolved_settings.notifications_via_telegram:
        notifier: HttpxTelegramNotifier | LoggingNotifier = (
            HttpxTelegramNotifier.create(
                bot_token=resolved_settings.telegram_bot_token or "",
                chat_id=resolved_settings.telegram_chat_id or 0,
            )
        )
    else:
        notifier = LoggingNotifier()
    notification_service = NotificationService(notifier)

    async def close_resources() -> None:
        await notifier.close()

    return AppContainer(
        settings=resolved_settings,
        stats_service=stats_service,
        food_entry_service=food_entry_service,
        workout_service=workout_service,
        notification_service=notification_service,
        close_resources=close_resources,
    )
