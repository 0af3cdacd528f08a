"""Notifications module - single latency-compensated reminder."""

from quitpace.notifications.backend import AsyncioNotificationBackend, NotificationBackend
from quitpace.notifications.scheduler import NotificationScheduler, ReminderSlot
from quitpace.notifications.types import ReminderPayload, ScheduledReminder

__all__ = [
    "AsyncioNotificationBackend",
    "NotificationBackend",
    "NotificationScheduler",
    "ReminderPayload",
    "ReminderSlot",
    "ScheduledReminder",
]
