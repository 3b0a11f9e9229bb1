"""Tools for the morning routine workflow.

These stand in for the device layer (speaker, calendar). Each returns plain
data the agent can read.
"""

from __future__ import annotations

from datetime import date


def play_sound(sound: str = "chime", volume: int = 3) -> dict[str, object]:
    """Play a named sound at the given volume (1-10)."""
    if not 1 <= volume <= 10:
        raise ValueError("volume must be between 1 and 10")
    return {"played": sound, "volume": volume}


def speak(text: str) -> dict[str, object]:
    """Say a sentence out loud."""
    return {"spoken": text}


def get_calendar_events(day: str | None = None) -> dict[str, object]:
    """List calendar events for a day (ISO date, defaults to today)."""
    when = day or date.today().isoformat()
    return {"date": when, "events": []}
