"""Group boundary detection over an ordered stream.

At the top of each loop iteration set ``current``; at the bottom set
``last``. The tracker then reports when a new group has started and when the
previous group has finished, without materializing the groups.

Only correct when the stream is sorted by the tracked value. An unsorted
stream splits one group into several.
"""

from __future__ import annotations

from typing import Generic, TypeVar

T = TypeVar("T")


class ChangeTracker(Generic[T]):
    """Tracks the current and last-completed group key."""

    def __init__(self) -> None:
        self._current: T | None = None
        self._last: T | None = None

    @property
    def current(self) -> T | None:
        return self._current

    @property
    def last(self) -> T | None:
        return self._last

    def set_current(self, value: T) -> None:
        """Record the group key of the element being processed."""
        self._current = value

    def set_last(self, value: T) -> None:
        """Record the group key of the element just finished."""
        self._last = value

    def has_new_started(self) -> bool:
        """True on the first element and whenever the key changes."""
        if self._last is None:
            return True
        return self._last != self._current

    def has_finished_last(self) -> bool:
        """True when a previous group exists and the key has changed."""
        if self._last is None:
            return False
        return self._last != self._current
