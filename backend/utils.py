# utils.py
# Helpers: clock parsing, day windows, daily time budget, dedupe, simple in-memory TTL cache

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Hashable, List
from models import DayWindow, DayWindowIn, Place
import math
import re
import time

# a quarter of each day's window is held back for getting between stops
RESERVE_FACTOR = 0.75

_CLOCK_RE = re.compile(r"(\d{1,2}):(\d{2})")


def parse_clock(value: str) -> int:
    """
    "HH:MM" -> minutes since midnight. "24:00" is accepted as end of day.
    Raises ValueError on anything else.
    """
    m = _CLOCK_RE.fullmatch((value or "").strip())
    if not m:
        raise ValueError(f"bad clock time {value!r}, expected HH:MM")
    hours, minutes = int(m.group(1)), int(m.group(2))
    if minutes > 59 or hours > 24 or (hours == 24 and minutes):
        raise ValueError(f"bad clock time {value!r}")
    return hours * 60 + minutes


def build_windows(raw: List[DayWindowIn]) -> List[DayWindow]:
    """Turn the per-day HH:MM config into DayWindows ordered by day index (0..n-1, no gaps)."""
    windows = sorted(
        (
            DayWindow(
                dayIndex=w.dayIndex,
                date=w.date,
                startMinutesOfDay=parse_clock(w.startTime),
                endMinutesOfDay=parse_clock(w.endTime),
            )
            for w in raw
        ),
        key=lambda w: w.dayIndex,
    )
    indices = [w.dayIndex for w in windows]
    if indices != list(range(len(windows))):
        raise ValueError(f"day windows must cover day indices 0..{len(windows) - 1} once each, got {indices}")
    return windows


def available_minutes(window: DayWindow) -> int:
    return math.floor((window.endMinutesOfDay - window.startMinutesOfDay) * RESERVE_FACTOR)


def dedupe(places: List[Place]) -> List[Place]:
    """Deduplicate selections by id (first one wins, order kept)."""
    seen = set()
    out: List[Place] = []
    for p in places:
        if p.id not in seen:
            seen.add(p.id)
            out.append(p)
    return out


@dataclass
class CacheEntry:
    expires: float
    data: Any


class TTLCache:
    """Simple in-memory TTL cache (per-process)."""

    def __init__(self, ttl_seconds: int = 600):
        self.ttl = ttl_seconds
        self._store: dict[Hashable, CacheEntry] = {}

    def get(self, key: Hashable) -> Any | None:
        entry = self._store.get(key)
        if not entry:
            return None
        if entry.expires < time.time():
            self._store.pop(key, None)
            return None
        return entry.data

    def set(self, key: Hashable, value: Any) -> None:
        now = time.time()
        # expired keys may never be read again, drop them on write
        for stale in [k for k, e in self._store.items() if e.expires < now]:
            del self._store[stale]
        # last writer wins; values for one key are interchangeable
        self._store[key] = CacheEntry(expires=now + self.ttl, data=value)

    def __len__(self) -> int:
        return len(self._store)
