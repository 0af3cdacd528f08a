"""Repository functions for plan and event log persistence.

Single responsibility: database operations only. Callers own the session
(see quitpace.db.session.get_session).
"""

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from quitpace.db.models import PlanSettings, SmokingEvent
from quitpace.events.types import EventLogEntry
from quitpace.plans.types import PlanConfig

PLAN_SETTINGS_ROW_ID = 1


def _format_clock_time(value) -> str:
    return value.strftime("%H:%M")


def save_plan_config(session: Session, config: PlanConfig) -> PlanSettings:
    """Create or replace the stored plan.

    Args:
        session: Database session
        config: Plan configuration from onboarding

    Returns:
        The PlanSettings row
    """
    row = session.get(PlanSettings, PLAN_SETTINGS_ROW_ID)
    if row is None:
        row = PlanSettings(id=PLAN_SETTINGS_ROW_ID)
        session.add(row)

    row.daily_baseline_count = config.daily_baseline_count
    row.plan_kind = config.plan_kind.value
    row.start_date = config.start_date
    row.active_window_start = _format_clock_time(config.active_window_start)
    row.active_window_end = _format_clock_time(config.active_window_end)
    row.pack_price = config.pack_price
    row.units_per_pack = config.units_per_pack
    session.flush()
    return row


def get_plan_config(session: Session) -> PlanConfig | None:
    """Load the stored plan, or None before onboarding."""
    row = session.get(PlanSettings, PLAN_SETTINGS_ROW_ID)
    if row is None:
        return None

    return PlanConfig(
        daily_baseline_count=row.daily_baseline_count,
        plan_kind=row.plan_kind,
        start_date=row.start_date,
        active_window_start=row.active_window_start,
        active_window_end=row.active_window_end,
        pack_price=row.pack_price,
        units_per_pack=row.units_per_pack,
    )


def append_event(session: Session, entry: EventLogEntry) -> SmokingEvent:
    """Insert an event. Events are never updated."""
    row = SmokingEvent(occurred_at_ms=entry.occurred_at_ms)
    session.add(row)
    session.flush()
    return row


def list_events(session: Session) -> list[EventLogEntry]:
    """All events in insertion order."""
    rows = session.execute(select(SmokingEvent.occurred_at_ms).order_by(SmokingEvent.id)).scalars().all()
    return [EventLogEntry(occurred_at_ms=value) for value in rows]


def clear_all_data(session: Session) -> dict[str, int]:
    """Delete the plan and the whole event log.

    Returns:
        Number of rows deleted per table
    """
    event_count = session.execute(select(func.count()).select_from(SmokingEvent)).scalar_one()
    plan_count = session.execute(select(func.count()).select_from(PlanSettings)).scalar_one()

    session.execute(delete(SmokingEvent))
    session.execute(delete(PlanSettings))

    return {"smoking_events": event_count, "plan_settings": plan_count}
