"""Fixed-capacity byte FIFO used for the serial link."""

from __future__ import annotations

from collections import deque


class SerialBuffer:
    """A first-in, first-out queue of bytes with a fixed capacity."""

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._data: deque[int] = deque()

    @property
    def capacity(self) -> int:
        """The number of bytes the buffer can hold."""
        return self._capacity

    def push(self, byte: int) -> None:
        """Append one byte; raise OverflowError if the buffer is full."""
        if not 0 <= byte <= 0xFF:
            raise ValueError(f"byte out of range: {byte}")
        if len(self._data) >= self._capacity:
            raise OverflowError("serial buffer is full")
        self._data.append(byte)

    def pop(self) -> int | None:
        """Remove and return the oldest byte, or None if empty."""
        return self._data.popleft() if self._data else None

    def peek(self) -> int | None:
        """Return the oldest byte without removing it, or None if empty."""
        return self._data[0] if self._data else None

    def free_space(self) -> int:
        """The number of bytes that can still be pushed."""
        return self._capacity - len(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"SerialBuffer(capacity={self._capacity}, data={list(self._data)!r})"