"""A small non-blocking HTTP/1.1 client for posting events and statistics."""

from __future__ import annotations

import re
import select
import socket
import time
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Optional

from livesrt.log import LogLevel, log
from livesrt.ring_buffer import ByteRingBuffer

HTTP_DATA_SIZE = 4096
INVALID_CLIENT_ID = 0
RESPONSE_CODE_200 = "200"
DEFAULT_PORT = 80
DEFAULT_TIMEOUT = 5
DEFAULT_METHOD = "POST"
SUPPORTED_METHODS = ("GET", "POST")

_HEADER_END = b"\r\n\r\n"
_SELECT_TIMEOUT = 0.010
_ACCEPT = "Accept: text/html, */*\r\n"
_USER_AGENT = "User-Agent: srt-live-server\r\n"
_CONTENT_TYPE = "Content-Type: application/x-www-form-urlencoded\r\n"
_CONNECTION = "Connection: Keep-Alive\r\n"
_CACHE_CONTROL = "Cache-Control: no-cache\r\n"
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class HttpError(Exception):
    """Raised when a URL, request or connection cannot be handled."""


class HttpCallbackType(IntEnum):
    """Stages at which the client calls its callback."""

    OPEN = 0
    CLOSE = 1
    RESPONSE_END = 2
    REQUEST_CONTENT = 3


@dataclass
class HttpResponseInfo:
    """What has been received of the current response."""

    header: list[str] = field(default_factory=list)
    code: str = ""
    content: bytes = b""
    content_length: int = -1

    @property
    def complete(self) -> bool:
        return self.content_length == len(self.content)

    def reset(self) -> None:
        self.header = []
        self.code = ""
        self.content = b""
        self.content_length = -1


@dataclass(frozen=True)
class HttpUrl:
    """The parts of an ``http://`` URL the client needs."""

    host: str
    port: int
    uri: str


Callback = Callable[["HttpClient", HttpCallbackType, Any], Any]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def parse_url(url: str) -> HttpUrl:
    """Split ``http://host[:port][/path]`` into host, port and request URI."""
    if not url:
        raise HttpError("empty url")
    scheme, sep, rest = url.partition(":")
    if not sep:
        raise HttpError(f"no ':' in url {url!r}")
    if scheme != "http":
        raise HttpError(f"not an 'http' url: {url!r}")
    rest = rest[2:]  # the '//' after the scheme
    authority, slash, path = rest.partition("/")
    host, colon, port_text = authority.partition(":")
    port = _atoi(port_text) if colon else DEFAULT_PORT
    return HttpUrl(host=host, port=port, uri=slash + path)


def build_request_header(method: str, uri: str, host: str,
                         content_length: int = 0) -> str:
    """Render the request line and headers, ending with the blank line."""
    if method not in SUPPORTED_METHODS:
        raise HttpError(f"unsupported http method {method!r}")
    lines = [
        f"{method} {uri} HTTP/1.1\r\n",
        _ACCEPT,
        _USER_AGENT,
        _CONTENT_TYPE,
        f"Host: {host}\r\n",
    ]
    if content_length > 0:
        lines.append(f"Content-Length: {content_length}\r\n")
    lines += [_CONNECTION, _CACHE_CONTROL, "\r\n"]
    return "".join(lines)


class HttpClient:
    """Sends one request over a non-blocking TCP socket and collects the reply."""

    def __init__(self, callback: Optional[Callback] = None,
                 timeout: int = DEFAULT_TIMEOUT,
                 client_id: int = INVALID_CLIENT_ID) -> None:
        self.callback = callback
        self.timeout = timeout
        self.id = client_id
        self.url = ""
        self.method = DEFAULT_METHOD
        self.interval = 0
        self.host = ""
        self.port = DEFAULT_PORT
        self.uri = ""
        self.begin_tm_ms = 0
        self.end_tm_ms = 0
        self.response = HttpResponseInfo()
        self._sock: Optional[socket.socket] = None
        self._out = ByteRingBuffer()
        self._pending = b""
        self._head_buf = b""

    @property
    def connected(self) -> bool:
        return self._sock is not None

    def fileno(self) -> int:
        """The socket's descriptor, or -1 when not connected."""
        return self._sock.fileno() if self._sock is not None else -1

    def _notify(self, cb_type: HttpCallbackType, value: Any) -> Any:
        if self.callback is None:
            return None
        return self.callback(self, cb_type, value)

    def _reset_exchange(self) -> None:
        self.response.reset()
        self.end_tm_ms = 0
        self._out.clear()
        self._pending = b""
        self._head_buf = b""

    def _drop_socket(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            finally:
                self._sock = None

    def open(self, url: str, method: Optional[str] = None, interval: int = 0) -> None:
        """Connect to ``url``, queue the request and try to send it."""
        self.begin_tm_ms = _now_ms()
        ok = False
        try:
            if not url:
                raise HttpError("empty url")
            self.url = url
            if method:
                self.method = method
            self.interval = interval
            target = parse_url(url)
            self.host, self.port, self.uri = target.host, target.port, target.uri
            try:
                ip = socket.gethostbyname(self.host)
            except OSError as exc:
                raise HttpError(f"failed to resolve {self.host!r}") from exc
            self._drop_socket()
            try:
                sock = socket.create_connection((ip, self.port), timeout=self.timeout)
            except OSError as exc:
                raise HttpError(f"failed to connect to {self.host}:{self.port}") from exc
            sock.setblocking(False)
            self._sock = sock
            self._reset_exchange()
            try:
                self._generate_request()
            except HttpError:
                self._drop_socket()
                raise
            self.handler()
            ok = True
        finally:
            self._notify(HttpCallbackType.OPEN, ok)

    def _generate_request(self) -> None:
        body = self._notify(HttpCallbackType.REQUEST_CONTENT, None) or b""
        if isinstance(body, str):
            body = body.encode("utf-8")
        header = build_request_header(self.method, self.uri, self.host, len(body))
        self._out.put(header.encode("latin-1"))
        if body:
            self._out.put(body)
        log(LogLevel.INFO, f"HttpClient request queued, url='{self.url}', content len={len(body)}.")

    def close(self) -> None:
        """Close the connection and forget the current exchange."""
        log(LogLevel.TRACE, f"HttpClient close, url='{self.url}'.")
        self._drop_socket()
        self._notify(HttpCallbackType.CLOSE, None)
        self._reset_exchange()

    def reopen(self) -> None:
        """Close and send the same request again."""
        self.close()
        self.open(self.url, self.method, self.interval)

    def check_timeout(self, cur_tm_ms: int = 0) -> bool:
        """Return True once the exchange is over or has run past the timeout.

        A response that ended with its whole body counts as not over here.
        """
        if self._sock is None:
            return True
        if self.end_tm_ms > 0:
            return not self.response.complete
        if cur_tm_ms == 0:
            cur_tm_ms = _now_ms()
        if cur_tm_ms - self.begin_tm_ms < self.timeout * 1000:
            return False
        self.end_tm_ms = cur_tm_ms
        self._notify(HttpCallbackType.RESPONSE_END, self.response)
        log(LogLevel.INFO, f"HttpClient timeout, url='{self.url}', method='{self.method}'.")
        return True

    def check_repeat(self, cur_tm_ms: int = 0) -> bool:
        """Return True when a repeating request is due again."""
        if self.interval <= 0:
            return False
        if cur_tm_ms == 0:
            cur_tm_ms = _now_ms()
        return cur_tm_ms - self.begin_tm_ms >= self.interval * 1000

    def check_finished(self) -> bool:
        """Return True when the whole body arrived or the client is not connected."""
        return self.response.complete or self._sock is None

    def _end_response(self) -> None:
        self.end_tm_ms = _now_ms()
        self._notify(HttpCallbackType.RESPONSE_END, self.response)
        log(LogLevel.INFO, f"HttpClient response finished, url='{self.url}', "
                           f"content_len={len(self.response.content)}.")

    def feed_response(self, data: bytes) -> bool:
        """Take received bytes; return True if they completed the response."""
        info = self.response
        if info.header:
            info.content += data
            if info.complete:
                self._end_response()
                return True
            return False

        self._head_buf += data
        head, sep, body = self._head_buf.partition(_HEADER_END)
        if not sep:
            log(LogLevel.TRACE, "HttpClient response header incomplete, continue.")
            return False
        self._head_buf = b""
        info.header = head.decode("latin-1").split("\r\n")
        status = info.header[0].split(" ", 2)
        if len(status) == 3:
            info.code = status[1]
        for line in info.header[1:]:
            name, colon, value = line.partition(":")
            if colon and name.strip().lower() == "content-length":
                info.content_length = _atoi(value)
                break
        info.content = body
        if info.complete:
            self._end_response()
            return True
        return False

    def send(self) -> int:
        """Write queued request bytes until the socket would block; return the count."""
        if self._sock is None:
            return 0
        total = 0
        while True:
            if not self._pending:
                if len(self._out) == 0:
                    break
                self._pending = self._out.get(HTTP_DATA_SIZE)
                if not self._pending:
                    break
            try:
                n = self._sock.send(self._pending)
            except (BlockingIOError, InterruptedError):
                break
            except OSError as exc:
                log(LogLevel.WARNING, f"HttpClient send failed, url='{self.url}': {exc}.")
                break
            if n <= 0:
                break
            total += n
            self._pending = self._pending[n:]
            if self._pending:
                break
        return total

    def recv(self) -> int:
        """Read what is available and parse it; return the number of bytes read."""
        if self._sock is None:
            return 0
        chunks = []
        while True:
            try:
                data = self._sock.recv(HTTP_DATA_SIZE)
            except (BlockingIOError, InterruptedError):
                break
            except OSError as exc:
                log(LogLevel.INFO, f"HttpClient recv failed, url='{self.url}': {exc}.")
                break
            if not data:
                break
            chunks.append(data)
        received = b"".join(chunks)
        if received:
            self.feed_response(received)
            if self.check_finished():
                log(LogLevel.INFO, "HttpClient recv finished.")
        return len(received)

    def handler(self) -> bool:
        """Wait briefly for the socket, then send and receive; return whether it was ready."""
        if self._sock is None:
            return False
        try:
            readable, writable, _ = select.select([self._sock], [self._sock], [],
                                                  _SELECT_TIMEOUT)
        except (OSError, ValueError) as exc:
            raise HttpError(f"select failed: {exc}") from exc
        if writable:
            self.send()
        if readable:
            self.recv()
        return bool(readable or writable)