# livesrt

Building blocks for a live stream relay server, in plain Python with no
third-party dependencies.

## Modules

- `livesrt.log`: `Logger` writes timestamped lines
  (`YYYY-mm-dd HH:MM:SS:mmm SLS LEVEL: message`) for messages at or below its
  `LogLevel` (`FATAL`, `ERROR`, `WARNING`, `INFO`, `DEBUG`, `TRACE`), to a
  stream (standard output by default) and, after `set_file`, appended to a
  file. `set_level` takes a level or a level name in any case; an unknown
  name keeps the current level. The module functions `get_logger`,
  `reset_logger`, `log`, `set_log_level` and `set_log_file` work on one
  shared logger.
- `livesrt.locks`: `RWLock`, a non-reentrant readers-writer lock with
  `acquire_read`, `acquire_write`, `release` and the context managers
  `read_locked` and `write_locked`.
- `livesrt.ring_buffer`: `ByteRingBuffer`, a thread-safe circular FIFO of
  bytes. `put` grows the store by at least 4096 bytes when data does not
  fit; `get(size)` returns up to `size` of the oldest bytes; `len()` gives
  the number buffered.
- `livesrt.http_client`: `parse_url` splits `http://host[:port][/path]` into
  an `HttpUrl` (port 80 by default), `build_request_header` renders a `GET`
  or `POST` request header, and `HttpClient` sends one request over a
  non-blocking socket and collects an `HttpResponseInfo`. The client calls
  its callback at the `HttpCallbackType` stages `OPEN`, `CLOSE`,
  `RESPONSE_END` and `REQUEST_CONTENT` (the return value of the last is used
  as the request body). Errors are raised as `HttpError`.
- `livesrt.http_role_list`: `HttpClientQueue`, a thread-safe FIFO of
  HTTP clients; `erase` closes every queued client.
- `livesrt.map_publisher`: `PublisherMap` maps `host/live` apps to
  `host/uplive` apps, uplive apps to their configuration and
  `app/stream` names to publishers. Registering a second publisher for a
  stream raises `PublisherExistsError`.
- `livesrt.epoll_thread`: `WorkerThread`, a base class that calls
  `handler()` in a loop on its own thread until `stop()`, then `clear()`.
- `livesrt.relay_managers`: `RelayInfo` and `RelayMode` (`loop`, `all`,
  `hash`), with `PullerManager` (tries upstreams in turn, starting after the
  last one used) and `PusherManager` (connects every upstream and retries
  failed ones after `reconnect_interval` seconds). Connecting is done by
  callables you pass in.
- `livesrt.map_relay`: `RelayMap` keeps one `RelayConf` per uplive app and
  creates one `PullerManager` or `PusherManager` per `app/stream`.
- `livesrt.group`: `Group`, a `WorkerThread` that polls roles through a
  poller you provide, hands ready ones to their `handler()`, retires roles
  whose `RoleState` is `UNINIT` or `INVALID`, queues relay managers for
  reconnecting, takes new roles from a role source up to
  `worker_connections`, and gathers statistics text every
  `stat_post_interval` seconds.

## Example

```python
from livesrt.ring_buffer import ByteRingBuffer
from livesrt.http_client import parse_url

buf = ByteRingBuffer(8)
buf.put(b"hello")
assert buf.get(3) == b"hel"
assert len(buf) == 2

url = parse_url("http://localhost:8000/sls?method=stat")
assert (url.host, url.port, url.uri) == ("localhost", 8000, "/sls?method=stat")
```

## What it does not do

This package holds the bookkeeping around a relay server, not a server
itself. It has no stream transport, no listener that accepts players or
publishers, no publisher, player or relay roles, no configuration file
reader and no command-line program. `Group` and the relay managers work
with whatever poller, roles and connect functions you give them.

## Tests

```
pip install -e .[test]
pytest
```