"""A thread-safe FIFO of HTTP clients waiting to be handled."""

from __future__ import annotations

import threading
from collections import deque
from typing import Deque, Optional

from livesrt.http_client import HttpClient
from livesrt.log import LogLevel, log


class HttpClientQueue:
    """Clients queued by one thread and taken by another, oldest first."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._clients: Deque[HttpClient] = deque()

    def push(self, client: Optional[HttpClient]) -> None:
        """Append ``client``; ``None`` is ignored."""
        if client is None:
            return
        with self._lock:
            self._clients.append(client)

    def pop(self) -> Optional[HttpClient]:
        """Remove and return the oldest client, or ``None`` when empty."""
        with self._lock:
            return self._clients.popleft() if self._clients else None

    def erase(self) -> None:
        """Close every queued client and empty the queue."""
        with self._lock:
            log(LogLevel.TRACE, f"HttpClientQueue erase, count={len(self._clients)}.")
            clients = list(self._clients)
            self._clients.clear()
        for client in clients:
            client.close()

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)