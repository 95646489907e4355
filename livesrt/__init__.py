"""Building blocks of a live stream relay server: logging, locks, buffers, HTTP client, maps, relay managers and worker groups."""

__version__ = "0.1.0"