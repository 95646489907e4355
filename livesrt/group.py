"""A worker that polls a set of roles and keeps that set healthy."""

from __future__ import annotations

import threading
import time
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from livesrt.epoll_thread import WorkerThread
from livesrt.log import LogLevel, log

POLLING_TIME_MS = 1
DEFAULT_WORKER_CONNECTIONS = 100
DEFAULT_STAT_POST_INTERVAL = 5


class RoleState(Enum):
    """Lifecycle state a role reports to its group."""

    UNINIT = "uninit"
    ACTIVE = "active"
    INVALID = "invalid"


_DEAD_STATES = (RoleState.UNINIT, RoleState.INVALID)


class _Poller(Protocol):
    def wait(self, timeout_ms: int) -> Tuple[Sequence[int], Sequence[int]]:
        """Return (readable, writable) descriptors; raise OSError on timeout or error."""


class _RoleSource(Protocol):
    def pop(self) -> Any:
        """Return the next new role, or None."""


def _now_ms() -> int:
    return int(time.time() * 1000)


def _name(role: Any) -> str:
    return getattr(role, "role_name", type(role).__name__)


class Group(WorkerThread):
    """Handles ready roles, retires dead ones and takes in new ones.

    A role offers ``fileno()``, ``add_to_poller(poller)``, ``handler()``,
    ``invalid_srt()``, ``get_state(cur_time_ms)``, ``is_reconnect()``,
    ``uninit()``, ``check_http_client()``, ``get_stat_info()`` and, when it
    reconnects, a ``relay_manager`` attribute.
    """

    def __init__(self, role_list: Optional[_RoleSource], poller: _Poller,
                 worker_number: int = 0,
                 worker_connections: int = DEFAULT_WORKER_CONNECTIONS,
                 stat_post_interval: int = DEFAULT_STAT_POST_INTERVAL) -> None:
        super().__init__()
        self.role_list = role_list
        self.poller = poller
        self.worker_number = worker_number
        self.worker_connections = worker_connections
        self.stat_post_interval = stat_post_interval
        self._roles: Dict[int, Any] = {}
        self._wait_http_roles: List[Any] = []
        self._reconnect_managers: List[Any] = []
        self._reload = False
        self._stat_lock = threading.Lock()
        self._stat_info = ""
        self._stat_post_last_tm_ms = _now_ms()

    def role_count(self) -> int:
        return len(self._roles)

    def reload(self) -> None:
        """Finish once every current role has gone."""
        self._reload = True

    def get_stat_info(self) -> str:
        with self._stat_lock:
            return self._stat_info

    def handler(self) -> int:
        """One poll pass; return the amount of work the roles reported."""
        if self._reload and not self._roles:
            log(LogLevel.INFO, f"Group handler, worker_number={self.worker_number} stop, "
                               f"reloading and no roles left.")
            self._exit_event.set()
            return 0
        try:
            readable, writable = self.poller.wait(POLLING_TIME_MS)
        except OSError:
            self._idle_check()
            return 0
        log(LogLevel.TRACE, f"Group handler, worker_number={self.worker_number}, "
                            f"writable={len(writable)}, readable={len(readable)}.")
        count = 0
        for fd in writable:
            count += self._dispatch(fd, "writable")
        for fd in readable:
            count += self._dispatch(fd, "readable")
        self._idle_check()
        if count == 0:
            time.sleep(POLLING_TIME_MS / 1000)
        return count

    def _dispatch(self, fd: int, kind: str) -> int:
        role = self._roles.get(fd)
        if role is None:
            log(LogLevel.WARNING, f"Group handler, worker_number={self.worker_number}, "
                                  f"no role for {kind} sock={fd}.")
            return 0
        ret = role.handler()
        if ret < 0:
            log(LogLevel.TRACE, f"Group handler, worker_number={self.worker_number}, "
                                f"{kind} sock={fd} is invalid, {_name(role)}.")
            role.invalid_srt()
            return 0
        return ret

    def _idle_check(self) -> None:
        self._check_wait_http_role()
        self._check_reconnect_relay()
        self._check_invalid_sock()
        self._check_new_role()

    def _check_wait_http_role(self) -> None:
        still_waiting = []
        for role in self._wait_http_roles:
            if role is None:
                continue
            if not role.check_http_client():
                log(LogLevel.INFO, f"Group check_wait_http_role, worker_number="
                                   f"{self.worker_number}, drop {_name(role)}.")
                role.uninit()
                continue
            role.handler()
            still_waiting.append(role)
        self._wait_http_roles = still_waiting

    def _check_reconnect_relay(self) -> None:
        cur_time_ms = _now_ms()
        pending = []
        for manager in self._reconnect_managers:
            if manager is None:
                log(LogLevel.INFO, f"Group check_reconnect_relay, worker_number="
                                   f"{self.worker_number}, remove invalid relay manager.")
                continue
            if not manager.reconnect(cur_time_ms):
                pending.append(manager)
        self._reconnect_managers = pending

    def _check_invalid_sock(self) -> None:
        cur_time_ms = _now_ms()
        update_stat = (cur_time_ms - self._stat_post_last_tm_ms
                       >= self.stat_post_interval * 1000)
        parts: List[str] = []
        if update_stat:
            self._stat_post_last_tm_ms = cur_time_ms
        for fd, role in sorted(self._roles.items()):
            if role is None:
                del self._roles[fd]
                continue
            if update_stat:
                parts.append(role.get_stat_info())
            state = role.get_state(cur_time_ms)
            if state not in _DEAD_STATES:
                continue
            log(LogLevel.INFO, f"Group check_invalid_sock, worker_number={self.worker_number}, "
                               f"{_name(role)}, invalid sock={fd}, state={state.value}.")
            if role.is_reconnect():
                self._reconnect_managers.append(getattr(role, "relay_manager", None))
                log(LogLevel.INFO, f"Group check_invalid_sock, {_name(role)} needs reconnect.")
            role.uninit()
            if role.check_http_client():
                self._wait_http_roles.append(role)
            del self._roles[fd]
        if update_stat:
            with self._stat_lock:
                self._stat_info = "".join(parts)

    def _check_new_role(self) -> None:
        if self.role_list is None or len(self._roles) >= self.worker_connections:
            return
        role = self.role_list.pop()
        if role is None:
            return
        fd = role.fileno()
        if fd <= 0:
            log(LogLevel.INFO, f"Group check_new_role, {_name(role)} has no socket, dropped.")
            return
        if role.add_to_poller(self.poller):
            self._roles[fd] = role
            log(LogLevel.INFO, f"Group check_new_role, worker_number={self.worker_number}, "
                               f"{_name(role)} added, fd={fd}, roles={len(self._roles)}.")
        else:
            log(LogLevel.INFO, f"Group check_new_role, worker_number={self.worker_number}, "
                               f"{_name(role)} add_to_poller failed, fd={fd}.")

    def stop(self) -> None:
        """End the loop and release roles still waiting on HTTP."""
        log(LogLevel.INFO, f"Group stop, worker_number={self.worker_number}.")
        super().stop()
        for role in self._wait_http_roles:
            if role is not None:
                role.uninit()
        self._wait_http_roles.clear()

    def clear(self) -> None:
        """Uninit and drop every polled role."""
        log(LogLevel.INFO, f"Group clear, worker_number={self.worker_number}, "
                           f"roles={len(self._roles)}.")
        for _, role in sorted(self._roles.items()):
            if role is not None:
                role.uninit()
        self._roles.clear()