"""Base worker thread that calls a handler in a loop until told to stop."""

from __future__ import annotations

import threading
from typing import Optional

from livesrt.log import LogLevel, log


class WorkerThread:
    """Runs ``handler`` repeatedly on its own thread, then ``clear`` on exit."""

    def __init__(self) -> None:
        self._exit_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Start the loop on a new thread."""
        if self._thread is not None and self._thread.is_alive():
            raise RuntimeError("worker thread already running")
        self._exit_event.clear()
        self._thread = threading.Thread(target=self.work, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Ask the loop to end and wait for it, unless called from the loop itself."""
        self._exit_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()
            self._thread = None

    def is_exit(self) -> bool:
        return self._exit_event.is_set()

    def work(self) -> None:
        """The loop body: handle until exit is requested, then clear."""
        log(LogLevel.INFO, f"WorkerThread work begin, {self!r}.")
        while not self._exit_event.is_set():
            self.handler()
        self.clear()
        log(LogLevel.INFO, f"WorkerThread work end, {self!r}.")

    def handler(self) -> int:
        """One pass of work; return how many items were handled."""
        return 0

    def clear(self) -> None:
        """Release what the loop held; called once when it ends."""