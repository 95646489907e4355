import threading

import pytest

from livesrt.locks import RWLock


def test_multiple_readers():
    lock = RWLock()
    assert lock.acquire_read() is True
    assert lock.acquire_read(blocking=False) is True
    assert lock.acquire_write(blocking=False) is False
    lock.release()
    lock.release()
    assert lock.acquire_write(blocking=False) is True
    lock.release()


def test_writer_excludes_readers_from_other_threads():
    lock = RWLock()
    results = []
    with lock.write_locked():
        t = threading.Thread(
            target=lambda: results.append(lock.acquire_read(blocking=False)))
        t.start()
        t.join()
    assert results == [False]
    assert lock.acquire_read(blocking=False) is True
    lock.release()


def test_release_unlocked_raises():
    with pytest.raises(RuntimeError):
        RWLock().release()


def test_write_reentry_raises():
    lock = RWLock()
    with lock.write_locked():
        with pytest.raises(RuntimeError):
            lock.acquire_write()
        with pytest.raises(RuntimeError):
            lock.acquire_read()


def test_blocked_writer_proceeds_after_reader_leaves():
    lock = RWLock()
    assert lock.acquire_read() is True
    acquired = threading.Event()
    results = []

    def writer():
        results.append(lock.acquire_write())
        acquired.set()
        lock.release()

    t = threading.Thread(target=writer)
    t.start()
    assert not acquired.wait(0.05)
    assert results == []
    lock.release()
    t.join(2)
    assert acquired.is_set()
    assert results == [True]
    assert lock.acquire_write(blocking=False) is True
    lock.release()


def test_context_manager_releases_on_error():
    lock = RWLock()
    with pytest.raises(ValueError):
        with lock.read_locked():
            raise ValueError("boom")
    assert lock.acquire_write(blocking=False) is True
    lock.release()