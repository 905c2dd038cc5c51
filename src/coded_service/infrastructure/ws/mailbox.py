"""Bounded outbound queue owned by one connection."""
from __future__ import annotations

import asyncio
from collections import deque


class Mailbox:
    """FIFO of serialized frames with a fixed capacity.

    Any number of producers may ``offer``; only the owning connection's writer
    calls ``get``. ``offer`` never waits: it returns False when the mailbox is
    full or closed. After ``close`` the writer still drains what is buffered,
    then ``get`` returns None.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("mailbox capacity must be positive")
        self._capacity = capacity
        self._frames: deque[str] = deque()
        self._closed = False
        self._wakeup = asyncio.Event()

    def __len__(self) -> int:
        return len(self._frames)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def full(self) -> bool:
        return len(self._frames) >= self._capacity

    def offer(self, frame: str) -> bool:
        if self._closed or self.full:
            return False
        self._frames.append(frame)
        self._wakeup.set()
        return True

    def close(self) -> bool:
        """Close the mailbox. Returns False if it was already closed."""
        if self._closed:
            return False
        self._closed = True
        self._wakeup.set()
        return True

    async def get(self) -> str | None:
        while not self._frames:
            if self._closed:
                return None
            self._wakeup.clear()
            await self._wakeup.wait()
        return self._frames.popleft()
