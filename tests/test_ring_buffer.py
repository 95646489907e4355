import pytest

from livesrt.ring_buffer import DEFAULT_MAX_DATA_SIZE, ByteRingBuffer


def test_default_capacity():
    assert ByteRingBuffer().capacity == DEFAULT_MAX_DATA_SIZE


def test_put_get_round_trip():
    buf = ByteRingBuffer()
    assert buf.put(b"hello world") == 11
    assert len(buf) == 11
    assert buf.get(5) == b"hello"
    assert buf.get(100) == b" world"
    assert len(buf) == 0


def test_get_empty_returns_nothing():
    assert ByteRingBuffer(8).get(4) == b""


def test_wraparound_preserves_order():
    buf = ByteRingBuffer(8)
    buf.put(b"abcdef")
    assert buf.get(4) == b"abcd"
    buf.put(b"ghijkl")
    assert buf.capacity == 8
    assert len(buf) == 8
    assert buf.get(8) == b"efghijkl"


def test_expansion_keeps_pending_data():
    buf = ByteRingBuffer(8)
    buf.put(b"abcdef")
    buf.get(3)
    buf.put(b"0123456789")
    assert buf.capacity == 8 + DEFAULT_MAX_DATA_SIZE
    assert buf.get(1000) == b"def0123456789"


def test_expansion_for_large_put():
    big = bytes(range(256)) * 40
    buf = ByteRingBuffer(16)
    buf.put(b"xy")
    buf.put(big)
    assert buf.capacity == 16 + len(big)
    assert buf.get(len(big) + 2) == b"xy" + big


def test_writes_after_expansion_continue_in_order():
    buf = ByteRingBuffer(4)
    buf.put(b"abcdefgh")
    buf.put(b"ij")
    assert buf.get(10) == b"abcdefghij"


def test_clear_and_set_size():
    buf = ByteRingBuffer(8)
    buf.put(b"abc")
    buf.clear()
    assert len(buf) == 0
    assert buf.get(3) == b""
    buf.put(b"zz")
    buf.set_size(32)
    assert buf.capacity == 32
    assert len(buf) == 0


def test_errors():
    buf = ByteRingBuffer(8)
    with pytest.raises(ValueError):
        buf.put(b"")
    with pytest.raises(ValueError):
        buf.get(-1)
    with pytest.raises(ValueError):
        buf.set_size(0)
    with pytest.raises(ValueError):
        ByteRingBuffer(-4)


def test_many_small_cycles():
    buf = ByteRingBuffer(7)
    received = b""
    sent = b""
    for i in range(50):
        chunk = bytes([i % 256]) * (i % 5 + 1)
        sent += chunk
        buf.put(chunk)
        received += buf.get(3)
    received += buf.get(10_000)
    assert received == sent