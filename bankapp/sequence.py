"""
Identifier Sequence Module

Monotonic, thread-safe identifier allocation. Each registry owns one
sequence, so tests get isolation by building fresh registries instead of
resetting global counters.
"""

import re
import threading
from typing import Optional


class IdSequence:
    """
    Allocates identifiers of the form PREFIX + zero-padded counter.

    IdSequence("ACC").next_id() -> "ACC001", "ACC002", ...
    Past 10**width - 1 the number simply grows wider ("ACC1000"), so ids
    stay unique but no longer have a fixed length.
    """

    def __init__(self, prefix: str, width: int = 3, start: int = 0):
        if width < 1:
            raise ValueError("Width must be at least 1")
        if start < 0:
            raise ValueError("Start must not be negative")
        self.prefix = prefix
        self.width = width
        self._counter = start
        self._lock = threading.Lock()
        self._pattern = re.compile(rf'^{re.escape(prefix)}(\d+)$')

    @property
    def current(self) -> int:
        """Last number handed out (0 if none)"""
        with self._lock:
            return self._counter

    def format(self, number: int) -> str:
        return f"{self.prefix}{number:0{self.width}d}"

    def next_id(self) -> str:
        """Allocate the next identifier"""
        with self._lock:
            self._counter += 1
            return self.format(self._counter)

    def parse(self, identifier: str) -> Optional[int]:
        """Return the numeric part of an identifier from this sequence, or None"""
        match = self._pattern.match(identifier or "")
        if not match:
            return None
        return int(match.group(1))

    def advance_to(self, number: int) -> None:
        """Move the counter forward so the next id is above `number`"""
        with self._lock:
            if number > self._counter:
                self._counter = number

    def observe(self, identifier: str) -> None:
        """Advance past an identifier loaded from storage"""
        number = self.parse(identifier)
        if number is not None:
            self.advance_to(number)

    def reset(self, start: int = 0) -> None:
        with self._lock:
            self._counter = start
