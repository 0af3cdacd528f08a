"""Reminder types."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ReminderPayload(BaseModel):
    """Content of the local reminder.

    Attributes:
        title: Notification title
        body: Notification body
        data: Extra data delivered with the notification (timer_end in epoch ms)
    """

    model_config = ConfigDict(frozen=True)

    title: str
    body: str
    data: dict[str, Any] = Field(default_factory=dict)


class ScheduledReminder(BaseModel):
    """The single outstanding reminder.

    Attributes:
        handle: Backend identifier used to cancel the reminder
        fire_at_ms: When the backend was asked to deliver it
        payload: Reminder content
    """

    model_config = ConfigDict(frozen=True)

    handle: str
    fire_at_ms: int
    payload: ReminderPayload
