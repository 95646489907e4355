"""A growable, thread-safe circular byte buffer."""

from __future__ import annotations

import threading

DEFAULT_MAX_DATA_SIZE = 4096


class ByteRingBuffer:
    """FIFO of bytes kept in a circular store that grows when a put does not fit."""

    def __init__(self, size: int = DEFAULT_MAX_DATA_SIZE) -> None:
        self._lock = threading.Lock()
        self._reset(size)

    def _reset(self, size: int) -> None:
        if size <= 0:
            raise ValueError(f"buffer size must be positive, got {size}")
        self._buf = bytearray(size)
        self._read = 0
        self._write = 0
        self._count = 0

    @property
    def capacity(self) -> int:
        return len(self._buf)

    def __len__(self) -> int:
        with self._lock:
            return self._count

    def set_size(self, n: int) -> None:
        """Replace the store with an empty one of ``n`` bytes."""
        with self._lock:
            self._reset(n)

    def clear(self) -> None:
        """Drop all buffered data, keeping the capacity."""
        with self._lock:
            self._read = self._write = self._count = 0

    def put(self, data: bytes) -> int:
        """Append ``data``, growing the store if needed; return its length."""
        data = bytes(data)
        n = len(data)
        if n == 0:
            raise ValueError("cannot put empty data")
        with self._lock:
            cap = len(self._buf)
            if n > cap - self._count:
                pending = self._take(self._count)
                new_cap = cap + max(DEFAULT_MAX_DATA_SIZE, n)
                self._buf = bytearray(new_cap)
                total = len(pending) + n
                self._buf[:total] = pending + data
                self._read = 0
                self._write = total % new_cap
                self._count = total
                return n
            end = self._write + n
            if end <= cap:
                self._buf[self._write:end] = data
            else:
                first = cap - self._write
                self._buf[self._write:] = data[:first]
                self._buf[:n - first] = data[first:]
            self._write = end % cap
            self._count += n
            return n

    def get(self, size: int) -> bytes:
        """Remove and return up to ``size`` bytes, oldest first."""
        if size < 0:
            raise ValueError(f"size must not be negative, got {size}")
        with self._lock:
            return self._take(size)

    def _take(self, size: int) -> bytes:
        k = min(size, self._count)
        if k == 0:
            return b""
        cap = len(self._buf)
        first = min(k, cap - self._read)
        out = bytes(self._buf[self._read:self._read + first])
        out += bytes(self._buf[:k - first])
        self._read = (self._read + k) % cap
        self._count -= k
        return out