"""Display helpers for countdown snapshots."""

from quitpace.timer.types import CountdownSnapshot, CountdownState


def format_remaining_time(seconds: int) -> str:
    """Format seconds as HH:MM:SS."""
    seconds = abs(int(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def format_duration(total_seconds: float) -> str:
    """Format seconds as a short human-readable duration (e.g. "1h 30m")."""
    if total_seconds <= 0:
        return "-"

    hours = int(total_seconds // 3600)
    minutes = int((total_seconds % 3600) // 60)

    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")

    return " ".join(parts) if parts else "< 1m"


def progress_fraction(snapshot: CountdownSnapshot) -> float:
    """Share of the current interval already waited, in [0, 1]."""
    if snapshot.interval_seconds <= 0 or snapshot.is_paused:
        return 0.0
    waited = snapshot.interval_seconds - snapshot.remaining_seconds
    return min(1.0, max(0.0, waited / snapshot.interval_seconds))


def status_message(snapshot: CountdownSnapshot) -> str:
    if snapshot.state == CountdownState.IDLE:
        return "Complete setup to start your plan."
    if snapshot.is_paused:
        return f"Outside your active hours. Window opens in {format_duration(snapshot.remaining_seconds)}."
    if snapshot.is_time_up:
        return "Time is up! You can smoke now, or keep going!"

    hours = snapshot.remaining_seconds // 3600
    minutes = (snapshot.remaining_seconds % 3600) // 60

    if hours > 0:
        return f"Just {hours} more hour{'s' if hours > 1 else ''} to go!"
    if minutes > 0:
        return f"Almost there! Just {minutes} more minute{'s' if minutes > 1 else ''}."
    return "Final countdown!"
