"""Managers that start and restart pull and push relays for one stream."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from livesrt.log import LogLevel, log

ConnectFn = Callable[[str], bool]
HashConnectFn = Callable[[], bool]
Clock = Callable[[], int]


def _now_ms() -> int:
    return int(time.time() * 1000)


class RelayMode(Enum):
    """How upstreams are chosen."""

    LOOP = "loop"
    ALL = "all"
    HASH = "hash"


@dataclass
class RelayInfo:
    """Relay settings for one uplive app."""

    type: str = "pull"
    mode: RelayMode = RelayMode.HASH
    upstreams: List[str] = field(default_factory=list)
    reconnect_interval: int = 10
    idle_streams_timeout: int = -1


class _RelayManager:
    """State shared by the pull and push managers."""

    def __init__(self, relay_info: Optional[RelayInfo], app_uplive: str,
                 stream_name: str, connect: ConnectFn,
                 connect_hash: Optional[HashConnectFn] = None,
                 map_publisher: Any = None, role_list: Any = None,
                 map_data: Any = None, clock: Optional[Clock] = None) -> None:
        self.relay_info = relay_info
        self.app_uplive = app_uplive
        self.stream_name = stream_name
        self.map_publisher = map_publisher
        self.role_list = role_list
        self.map_data = map_data
        self.reconnect_begin_tm = 0
        self._connect = connect
        self._connect_hash = connect_hash
        self._clock: Clock = clock if clock is not None else _now_ms

    @property
    def key_stream_name(self) -> str:
        return f"{self.app_uplive}/{self.stream_name}"

    def _url_for(self, upstream: str) -> str:
        return f"srt://{upstream}/{self.stream_name}"

    def _hash_connect(self) -> bool:
        if self._connect_hash is None:
            log(LogLevel.INFO, f"{type(self).__name__} no hash connector, "
                               f"stream={self.key_stream_name}.")
            return False
        return bool(self._connect_hash())

    def _publisher(self) -> Any:
        if self.map_publisher is None:
            return None
        return self.map_publisher.get_publisher(self.key_stream_name)


class PullerManager(_RelayManager):
    """Pulls a stream from an upstream when a player asks for it."""

    def __init__(self, relay_info: Optional[RelayInfo], app_uplive: str,
                 stream_name: str, connect: ConnectFn,
                 connect_hash: Optional[HashConnectFn] = None,
                 map_publisher: Any = None, role_list: Any = None,
                 map_data: Any = None, clock: Optional[Clock] = None) -> None:
        super().__init__(relay_info, app_uplive, stream_name, connect,
                         connect_hash, map_publisher, role_list, map_data, clock)
        self.cur_loop_index = -1

    def connect_loop(self) -> bool:
        """Try upstreams in turn, starting after the last one used."""
        info = self.relay_info
        if info is None or not info.upstreams:
            log(LogLevel.INFO, f"PullerManager connect_loop failed, no upstreams, "
                               f"stream={self.key_stream_name}.")
            return False
        count = len(info.upstreams)
        if self.cur_loop_index == -1:
            self.cur_loop_index = count - 1
        index = self.cur_loop_index + 1
        ok = False
        while True:
            if index >= count:
                index = 0
            url = self._url_for(info.upstreams[index])
            ok = bool(self._connect(url))
            if ok:
                break
            if index == self.cur_loop_index:
                log(LogLevel.INFO, f"PullerManager connect_loop failed, no available "
                                   f"pullers, stream={self.key_stream_name}.")
                break
            log(LogLevel.INFO, f"PullerManager connect_loop failed, index={index}, "
                               f"url='{url}'.")
            index += 1
        self.cur_loop_index = index
        return ok

    def start(self) -> bool:
        """Start pulling unless the stream already has a publisher."""
        info = self.relay_info
        if info is None:
            log(LogLevel.INFO, f"PullerManager start failed, no relay info, "
                               f"stream={self.key_stream_name}.")
            return False
        publisher = self._publisher()
        if publisher is not None:
            log(LogLevel.INFO, f"PullerManager start failed, publisher exists, "
                               f"stream={self.key_stream_name}.")
            return False
        if info.mode is RelayMode.LOOP:
            return self.connect_loop()
        if info.mode is RelayMode.HASH:
            return self._hash_connect()
        log(LogLevel.INFO, f"PullerManager start failed, wrong mode={info.mode}, "
                           f"stream={self.key_stream_name}.")
        return False

    def check_relay_param(self) -> bool:
        """Whether role list, publisher map and data map are all set."""
        for name in ("role_list", "map_publisher", "map_data"):
            if getattr(self, name) is None:
                log(LogLevel.WARNING, f"PullerManager check_relay_param failed, "
                                      f"{name} is None, stream={self.stream_name}.")
                return False
        return True

    def add_reconnect_stream(self, relay_url: str) -> None:
        """Note that the pull relay dropped; the retry interval starts now."""
        self.reconnect_begin_tm = self._clock()

    def reconnect(self, cur_tm_ms: int) -> bool:
        """Start again once the reconnect interval has passed."""
        info = self.relay_info
        if info is None:
            return False
        if cur_tm_ms - self.reconnect_begin_tm < info.reconnect_interval * 1000:
            return False
        self.reconnect_begin_tm = cur_tm_ms
        if not self.check_relay_param():
            return False
        ok = self.start()
        log(LogLevel.INFO, f"PullerManager reconnect, start {'ok' if ok else 'failed'}, "
                           f"key_stream_name={self.key_stream_name}.")
        return ok


class PusherManager(_RelayManager):
    """Pushes a published stream to its upstreams."""

    def __init__(self, relay_info: Optional[RelayInfo], app_uplive: str,
                 stream_name: str, connect: ConnectFn,
                 connect_hash: Optional[HashConnectFn] = None,
                 map_publisher: Any = None, role_list: Any = None,
                 map_data: Any = None, clock: Optional[Clock] = None) -> None:
        super().__init__(relay_info, app_uplive, stream_name, connect,
                         connect_hash, map_publisher, role_list, map_data, clock)
        self._lock = threading.RLock()
        self._reconnect_relays: Dict[str, int] = {}

    @property
    def reconnect_relays(self) -> Dict[str, int]:
        """Urls waiting to be reconnected, with the time they were last tried."""
        with self._lock:
            return dict(self._reconnect_relays)

    def connect_all(self) -> bool:
        """Connect every upstream; failures are queued for reconnecting."""
        info = self.relay_info
        if info is None:
            log(LogLevel.INFO, f"PusherManager connect_all failed, no relay info, "
                               f"stream={self.key_stream_name}.")
            return False
        all_ok = True
        for upstream in info.upstreams:
            url = self._url_for(upstream)
            ok = bool(self._connect(url))
            if not ok:
                with self._lock:
                    self._reconnect_relays[url] = self._clock()
            all_ok = all_ok and ok
        return all_ok

    def start(self) -> bool:
        """Start pushing if the stream has a publisher."""
        info = self.relay_info
        if info is None:
            log(LogLevel.INFO, f"PusherManager start failed, no relay info, "
                               f"stream={self.key_stream_name}.")
            return False
        if self.map_publisher is not None and self._publisher() is None:
            log(LogLevel.INFO, f"PusherManager start failed, no publisher, "
                               f"stream={self.key_stream_name}.")
            return False
        if info.mode is RelayMode.ALL:
            return self.connect_all()
        if info.mode is RelayMode.HASH:
            return self._hash_connect()
        log(LogLevel.INFO, f"PusherManager start failed, wrong mode={info.mode}, "
                           f"stream={self.key_stream_name}.")
        return False

    def check_relay_param(self) -> bool:
        """Whether role list and data map are set."""
        for name in ("role_list", "map_data"):
            if getattr(self, name) is None:
                log(LogLevel.WARNING, f"PusherManager check_relay_param failed, "
                                      f"{name} is None, stream={self.stream_name}.")
                return False
        return True

    def add_reconnect_stream(self, relay_url: str) -> bool:
        """Queue a dropped push relay for reconnecting."""
        info = self.relay_info
        if info is None:
            return False
        if info.mode is RelayMode.ALL:
            with self._lock:
                self._reconnect_relays[relay_url] = self._clock()
            return True
        if info.mode is RelayMode.HASH:
            self.reconnect_begin_tm = self._clock()
            return True
        log(LogLevel.INFO, f"PusherManager add_reconnect_stream failed, wrong "
                           f"mode={info.mode}, stream={self.key_stream_name}.")
        return False

    def reconnect(self, cur_tm_ms: int) -> bool:
        """Retry dropped push relays whose interval has passed."""
        if not self.check_relay_param():
            return False
        info = self.relay_info
        if info is None:
            return False
        no_publisher = self.map_publisher is not None and self._publisher() is None
        if info.mode is RelayMode.ALL:
            return self.reconnect_all(cur_tm_ms, no_publisher)
        if info.mode is RelayMode.HASH:
            if cur_tm_ms - self.reconnect_begin_tm < info.reconnect_interval * 1000:
                return False
            self.reconnect_begin_tm = cur_tm_ms
            if no_publisher:
                log(LogLevel.INFO, f"PusherManager reconnect failed, no publisher, "
                                   f"stream={self.key_stream_name}.")
                return False
            return self._hash_connect()
        log(LogLevel.INFO, f"PusherManager reconnect failed, wrong mode={info.mode}, "
                           f"stream={self.key_stream_name}.")
        return False

    def reconnect_all(self, cur_tm_ms: int, no_publisher: bool) -> bool:
        """Retry each queued url that is due; a success leaves the queue."""
        info = self.relay_info
        if info is None:
            return False
        interval_ms = info.reconnect_interval * 1000
        last_ok = False
        all_ok = True
        with self._lock:
            for url, begin_tm in list(self._reconnect_relays.items()):
                if cur_tm_ms - begin_tm < interval_ms:
                    all_ok = all_ok and last_ok
                    continue
                if no_publisher:
                    all_ok = all_ok and last_ok
                    self._reconnect_relays[url] = cur_tm_ms
                    log(LogLevel.INFO, f"PusherManager reconnect_all failed, url={url}, "
                                       f"no publisher.")
                    continue
                last_ok = bool(self._connect(url))
                if last_ok:
                    log(LogLevel.INFO, f"PusherManager reconnect_all ok, url='{url}'.")
                    del self._reconnect_relays[url]
                else:
                    log(LogLevel.INFO, f"PusherManager reconnect_all failed, url='{url}'.")
                    self._reconnect_relays[url] = cur_tm_ms
                all_ok = all_ok and last_ok
        return all_ok