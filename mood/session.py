"""
Per-session detection state: current mood, change counter and the fetch guard.
"""
from __future__ import annotations
import time
from typing import Optional

from mood.models import MoodResult


class DetectionSession:
    """
    State of one camera session, from start to stop.

    Only the owning detector mutates it; every check-and-set below runs without an
    await in between, so the fetch guard is atomic on the event loop.
    """

    def __init__(self):
        self.started_at = time.time()
        self._active = True
        self._current: Optional[MoodResult] = None
        self._last_fetched: Optional[str] = None
        self._change_count = 0
        self._fetch_in_progress = False
        self._fetch_count = 0
        self._tracks_fetched = False
        self._fetched_tracks_count = 0

    # ---- accessors ----
    @property
    def active(self) -> bool:
        return self._active

    @property
    def current(self) -> Optional[MoodResult]:
        return self._current

    @property
    def current_mood(self) -> Optional[str]:
        return self._current.mood if self._current else None

    @property
    def confidence(self) -> float:
        return self._current.confidence if self._current else 0.0

    @property
    def last_fetched_mood(self) -> Optional[str]:
        return self._last_fetched

    @property
    def mood_change_count(self) -> int:
        return self._change_count

    @property
    def fetch_in_progress(self) -> bool:
        return self._fetch_in_progress

    @property
    def fetch_count(self) -> int:
        """Number of fetches started in this session."""
        return self._fetch_count

    @property
    def tracks_fetched(self) -> bool:
        return self._tracks_fetched

    @property
    def fetched_tracks_count(self) -> int:
        return self._fetched_tracks_count

    # ---- transitions ----
    def record(self, result: MoodResult) -> bool:
        """Store the latest result; True when the mood differs from the previous tick."""
        previous = self.current_mood
        self._current = result
        changed = previous is not None and previous != result.mood
        if changed:
            self._change_count += 1
        return changed

    def should_fetch(self, mood: str) -> bool:
        return self._active and mood != self._last_fetched

    def begin_fetch(self, mood: str) -> bool:
        if self._fetch_in_progress or not self._active:
            return False
        self._fetch_in_progress = True
        self._last_fetched = mood
        self._fetch_count += 1
        self._tracks_fetched = False
        return True

    def end_fetch(self, count: Optional[int]) -> None:
        """Clear the guard; count is None when the fetch failed."""
        self._fetch_in_progress = False
        if count is None:
            self._tracks_fetched = False
        else:
            self._tracks_fetched = True
            self._fetched_tracks_count = int(count)

    def handoff_mood(self) -> Optional[str]:
        return self.current_mood or self._last_fetched

    def deactivate(self) -> None:
        self._active = False
