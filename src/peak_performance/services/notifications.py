"""Notification dispatch and daily reminder scheduling."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol
from uuid import uuid4

WORKOUT_REMINDER_ID = "dailyWorkoutReminder"
IMMEDIATE_DELAY_SECONDS = 0.1
LAST_HOUR = 23
LAST_MINUTE = 59

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImmediateTrigger:
    """Fire once, shortly after the request."""

    delay_seconds: float = IMMEDIATE_DELAY_SECONDS


@dataclass(frozen=True)
class DailyTrigger:
    """Fire every day at a local hour and minute."""

    hour: int
    minute: int

    def matches(self, moment: datetime) -> bool:
        return moment.hour == self.hour and moment.minute == self.minute


@dataclass(frozen=True)
class Notification:
    """A local notification request."""

    identifier: str
    title: str
    body: str
    trigger: ImmediateTrigger | DailyTrigger
    subtitle: str | None = None
    sound: str | None = "default"


class Notifier(Protocol):
    """Delivers notifications to the user."""

    async def send(self, notification: Notification) -> None:
        """Deliver a notification."""


@dataclass
class NotificationService:
    """Fires one-shot notifications and keeps keyed daily reminders."""

    notifier: Notifier
    _reminders: dict[str, Notification] = field(default_factory=dict)

    async def send(self, title: str, body: str) -> Notification:
        """Fire a one-shot notification.

        Delivery failures are logged and never raised to the caller.
        """
        notification = Notification(
            identifier=str(uuid4()),
            title=title,
            body=body,
            trigger=ImmediateTrigger(),
        )
        await self._dispatch(notification)
        return notification

    def schedule_workout_reminder(self, hour: int, minute: int) -> Notification:
        """Schedule the daily workout reminder, replacing any earlier one."""
        if not 0 <= hour <= LAST_HOUR or not 0 <= minute <= LAST_MINUTE:
            raise ValueError(f"Invalid reminder time {hour}:{minute}")
        reminder = Notification(
            identifier=WORKOUT_REMINDER_ID,
            title="Time to Workout! 💪",
            subtitle="Your daily fitness reminder",
            body="Don't forget your fitness goals for today. Let's crush it!",
            trigger=DailyTrigger(hour=hour, minute=minute),
        )
        self._reminders[WORKOUT_REMINDER_ID] = reminder
        _logger.info("Workout reminder scheduled for %02d:%02d", hour, minute)
        return reminder

    def cancel_workout_reminders(self) -> None:
        self._reminders.pop(WORKOUT_REMINDER_ID, None)
        _logger.info("Workout reminders cancelled")

    def pending_reminders(self) -> list[Notification]:
        return list(self._reminders.values())

    def due_reminders(self, now: datetime) -> list[Notification]:
        """Return the reminders whose daily time matches ``now``."""
        return [
            reminder
            for reminder in self._reminders.values()
            if isinstance(reminder.trigger, DailyTrigger)
            and reminder.trigger.matches(now)
        ]

    async def fire_due(self, now: datetime) -> list[Notification]:
        """Dispatch every reminder due at ``now``."""
        due = self.due_reminders(now)
        for reminder in due:
            await self._dispatch(reminder)
        return due

    async def _dispatch(self, notification: Notification) -> None:
        try:
            await self.notifier.send(notification)
        except Exception:
            _logger.exception(
                "Failed to deliver notification: identifier=%s",
                notification.identifier,
            )
