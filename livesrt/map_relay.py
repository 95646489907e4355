"""Relay settings per uplive app and the relay manager of each relayed stream."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Union

from livesrt.locks import RWLock
from livesrt.log import LogLevel, log
from livesrt.relay_managers import (
    ConnectFn,
    HashConnectFn,
    PullerManager,
    PusherManager,
    RelayInfo,
    RelayMode,
)

RelayManager = Union[PullerManager, PusherManager]


@dataclass
class RelayConf:
    """A relay block as read from the configuration."""

    type: str = "pull"
    mode: str = "hash"
    upstreams: str = ""
    reconnect_interval: int = 10
    idle_streams_timeout: int = -1


def _parse_mode(mode: str) -> RelayMode:
    try:
        return RelayMode(mode)
    except ValueError:
        log(LogLevel.INFO, f"RelayMap wrong mode='{mode}', use default 'hash'.")
        return RelayMode.HASH


class RelayMap:
    """Holds relay settings by uplive app and one manager per 'app/stream'."""

    def __init__(self) -> None:
        self._lock = RWLock()
        self._managers: Dict[str, RelayManager] = {}
        self._relay_info: Dict[str, RelayInfo] = {}

    def add_relay_conf(self, app_uplive: str, conf: Optional[RelayConf]) -> RelayInfo:
        """Register the relay settings of an uplive app; each app takes one."""
        if conf is None:
            raise ValueError("relay conf is None")
        if self.get_relay_conf(app_uplive) is not None:
            raise ValueError(f"relay conf for '{app_uplive}' already exists")
        upstreams = conf.upstreams.split()
        if not upstreams:
            log(LogLevel.INFO, f"RelayMap add_relay_conf, wrong upstreams='{conf.upstreams}'.")
        info = RelayInfo(
            type=conf.type,
            mode=_parse_mode(conf.mode),
            upstreams=upstreams,
            reconnect_interval=conf.reconnect_interval,
            idle_streams_timeout=conf.idle_streams_timeout,
        )
        self._relay_info[app_uplive] = info
        return info

    def get_relay_conf(self, app_uplive: str) -> Optional[RelayInfo]:
        return self._relay_info.get(app_uplive)

    def add_relay_manager(self, app_uplive: str, stream_name: str,
                          connect: ConnectFn,
                          connect_hash: Optional[HashConnectFn] = None
                          ) -> Optional[RelayManager]:
        """Return the stream's manager, creating it; None when the app has no relay."""
        info = self.get_relay_conf(app_uplive)
        if info is None:
            log(LogLevel.INFO, f"RelayMap add_relay_manager, no relay conf info, "
                               f"app_uplive={app_uplive}, stream_name={stream_name}.")
            return None
        key = f"{app_uplive}/{stream_name}"
        with self._lock.write_locked():
            current = self._managers.get(key)
            if current is not None:
                log(LogLevel.INFO, f"RelayMap add_relay_manager, exists, stream={key}.")
                return current
            if info.type == "pull":
                manager: RelayManager = PullerManager(info, app_uplive, stream_name,
                                                      connect, connect_hash)
            elif info.type == "push":
                manager = PusherManager(info, app_uplive, stream_name,
                                        connect, connect_hash)
            else:
                raise ValueError(f"wrong relay type '{info.type}' for '{app_uplive}'")
            self._managers[key] = manager
            log(LogLevel.INFO, f"RelayMap add_relay_manager ok, stream={key}.")
            return manager

    def clear(self) -> None:
        """Forget every manager and every relay setting."""
        with self._lock.write_locked():
            log(LogLevel.INFO, "RelayMap clear.")
            self._managers.clear()
            self._relay_info.clear()