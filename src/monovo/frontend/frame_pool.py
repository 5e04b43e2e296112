"""Fixed-capacity sliding buffer of recent frames."""

from __future__ import annotations

from typing import Iterator

from ..video_reader import Frame, FrameSource


class FramePool:
    """Sliding window of the most recent frames, oldest first.

    After each pipeline step the frames examined by the match sufficiency
    search are dropped from the front (:meth:`shift`) and the pool is topped
    back up from the frame source (:meth:`refill`).
    """

    def __init__(self, capacity: int = 5) -> None:
        """Initialize an empty pool.

        Args:
            capacity: Number of frames the pool holds when full
        """
        if capacity < 1:
            raise ValueError(f"Pool capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._frames: list[Frame] = []

    def shift(self, consumed: int) -> None:
        """Drop the first ``consumed`` frames.

        Args:
            consumed: Number of frames to discard from the front; equal to
                the pool size empties the pool

        Raises:
            ValueError: If consumed is negative or exceeds the pool size
        """
        if consumed < 0 or consumed > len(self._frames):
            raise ValueError(
                f"Cannot consume {consumed} frames from a pool of {len(self._frames)}"
            )
        self._frames = self._frames[consumed:]

    def refill(self, source: FrameSource) -> bool:
        """Pull frames from the source until the pool is full.

        Args:
            source: Frame source returning None at end of stream

        Returns:
            True if the pool is full, False if the source ran out first.
            A partially refilled pool must not be processed.
        """
        while not self.is_full:
            frame = source.get_next_frame()
            if frame is None:
                return False
            self.append(frame)
        return True

    def append(self, frame: Frame) -> None:
        """Add a frame at the tail.

        Raises:
            ValueError: If the pool already holds ``capacity`` frames
        """
        if len(self._frames) >= self._capacity:
            raise ValueError(f"Frame pool is full ({self._capacity} frames)")
        self._frames.append(frame)

    @property
    def tail(self) -> Frame:
        """Return the newest frame."""
        if not self._frames:
            raise IndexError("Frame pool is empty")
        return self._frames[-1]

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def frames(self) -> list[Frame]:
        return list(self._frames)

    @property
    def is_full(self) -> bool:
        """Return True once the pool holds ``capacity`` frames."""
        return len(self._frames) == self._capacity

    def __len__(self) -> int:
        return len(self._frames)

    def __getitem__(self, index: int) -> Frame:
        return self._frames[index]

    def __iter__(self) -> Iterator[Frame]:
        return iter(self._frames)
