"""Lookup tables from play/publish names to configurations and publishers."""

from __future__ import annotations

from typing import Any, Dict, Optional

from livesrt.locks import RWLock
from livesrt.log import LogLevel, log


class PublisherExistsError(Exception):
    """Raised when a stream already has a publisher."""


class PublisherMap:
    """Maps 'host/live' to 'host/uplive', uplive apps to conf and streams to publishers."""

    def __init__(self) -> None:
        self._lock = RWLock()
        self._live_2_uplive: Dict[str, str] = {}
        self._uplive_2_conf: Dict[str, Any] = {}
        self._publishers: Dict[str, Any] = {}

    def set_conf(self, key: str, conf: Any) -> None:
        with self._lock.write_locked():
            self._uplive_2_conf[key] = conf

    def set_live_2_uplive(self, live: str, uplive: str) -> None:
        with self._lock.write_locked():
            self._live_2_uplive[live] = uplive

    def set_publisher(self, app_stream_name: str, role: Any) -> None:
        """Register ``role`` as the publisher of a stream that has none yet."""
        with self._lock.write_locked():
            current = self._publishers.get(app_stream_name)
            if current is not None:
                log(LogLevel.INFO,
                    f"PublisherMap set_publisher failed, '{app_stream_name}' already published.")
                raise PublisherExistsError(app_stream_name)
            self._publishers[app_stream_name] = role
            log(LogLevel.INFO,
                f"PublisherMap set_publisher ok, app_streamname={app_stream_name}, "
                f"size={len(self._publishers)}.")

    def remove(self, role: Any) -> bool:
        """Forget the first stream published by ``role``; return whether one was found."""
        with self._lock.write_locked():
            for name, pub in self._publishers.items():
                if pub is role:
                    del self._publishers[name]
                    log(LogLevel.INFO, f"PublisherMap remove, live_key={name}.")
                    return True
        return False

    def clear(self) -> None:
        with self._lock.write_locked():
            log(LogLevel.INFO, "PublisherMap clear.")
            self._publishers.clear()
            self._live_2_uplive.clear()
            self._uplive_2_conf.clear()

    def get_uplive(self, key_app: str) -> str:
        """The uplive app for a play app, or an empty string."""
        with self._lock.read_locked():
            return self._live_2_uplive.get(key_app, "")

    def get_conf(self, key_app: str) -> Optional[Any]:
        with self._lock.read_locked():
            return self._uplive_2_conf.get(key_app)

    def get_publisher(self, app_stream_name: str) -> Optional[Any]:
        with self._lock.read_locked():
            return self._publishers.get(app_stream_name)