"""
Bounded undo history of committed base-layer states.

Classes:
    HistorySnapshot: Immutable copy of a raster at a point in time
    HistoryStack: Capacity-bounded snapshot sequence, oldest first
"""

from collections import deque
from dataclasses import dataclass
import logging
from typing import Iterator, Optional, Tuple

import numpy as np

from OC_Libs.constants import HISTORY_CAPACITY
from OC_Libs.RasterLib.pixel_buffer import PixelBuffer

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class HistorySnapshot:
    """Read-only copy of a buffer's pixels.

    Attributes:
        width: Raster width in pixels
        height: Raster height in pixels
        pixels: Read-only (height, width, 4) uint8 array
    """
    width: int
    height: int
    pixels: np.ndarray

    @classmethod
    def capture(cls, buffer: PixelBuffer) -> "HistorySnapshot":
        """Copy a buffer into a new snapshot."""
        data = buffer.array.copy()
        data.flags.writeable = False
        return cls(width=buffer.width, height=buffer.height, pixels=data)

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def restore(self) -> PixelBuffer:
        """Return a new writable buffer holding the snapshot's pixels."""
        return PixelBuffer.from_array(self.pixels)

    def matches(self, buffer: PixelBuffer) -> bool:
        """True if the buffer holds exactly this snapshot's pixels."""
        return buffer.size == self.size and np.array_equal(buffer.array, self.pixels)


class HistoryStack:
    """
    Ordered snapshots, oldest first, bounded to `capacity` entries.

    The newest entry is always the current committed state. Pushing past
    capacity drops the oldest entry. Undo never removes the last remaining
    entry.

    Example:
        >>> history = HistoryStack()
        >>> history.reset(base)
        >>> history.push(edited)
        >>> history.undo().matches(base)
        True
    """

    def __init__(self, capacity: int = HISTORY_CAPACITY):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._entries: deque = deque(maxlen=int(capacity))

    @property
    def capacity(self) -> int:
        return self._entries.maxlen

    @property
    def top(self) -> Optional[HistorySnapshot]:
        """Most recent snapshot, or None when empty."""
        return self._entries[-1] if self._entries else None

    def can_undo(self) -> bool:
        return len(self._entries) > 1

    def push(self, buffer: PixelBuffer) -> HistorySnapshot:
        """Snapshot a buffer as the newest entry, evicting the oldest if full."""
        snapshot = HistorySnapshot.capture(buffer)
        if len(self._entries) == self.capacity:
            logger.debug(f"History full ({self.capacity}), evicting oldest snapshot")
        self._entries.append(snapshot)
        return snapshot

    def reset(self, buffer: PixelBuffer) -> HistorySnapshot:
        """Discard all entries and start over from a single snapshot."""
        self._entries.clear()
        return self.push(buffer)

    def undo(self) -> Optional[HistorySnapshot]:
        """
        Drop the newest entry and return the new top.

        Returns:
            The snapshot to restore, or None if only one entry remains
        """
        if not self.can_undo():
            return None
        self._entries.pop()
        return self._entries[-1]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistorySnapshot]:
        return iter(self._entries)
