from __future__ import annotations


class RefreshTrigger:
    """Count-based invalidation signal.

    Writers call ``bump`` after a successful mutation; a view remembers the
    value it rendered with and re-runs the read path once ``is_stale`` says so.
    """

    def __init__(self, start: int = 0):
        self._value = start

    @property
    def value(self) -> int:
        return self._value

    def bump(self) -> int:
        self._value += 1
        return self._value

    def is_stale(self, seen: int) -> bool:
        return seen < self._value
