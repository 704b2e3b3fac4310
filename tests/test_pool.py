import threading
import time
from collections import Counter

import pytest

from dnsSweep.scanner.pool import WorkerPool


def test_every_item_dispatched_exactly_once():
    seen = Counter()
    lock = threading.Lock()

    def task(item):
        with lock:
            seen[item] += 1

    stats = WorkerPool(5).run(range(200), task)

    assert seen == Counter(range(200))
    assert stats.dispatched == 200
    assert stats.completed == 200
    assert stats.failed == 0


def test_concurrency_never_exceeds_limit():
    limit = 3
    active = 0
    peak = 0
    lock = threading.Lock()

    def task(item):
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.01)
        with lock:
            active -= 1

    stats = WorkerPool(limit).run(range(30), task)

    assert peak <= limit
    assert stats.peak_in_flight <= limit
    assert stats.completed == 30


def test_dispatch_blocks_while_all_slots_busy():
    limit = 2
    release = threading.Event()
    started = threading.Semaphore(0)
    consumed = []

    def items():
        for i in range(10):
            consumed.append(i)
            yield i

    def task(item):
        started.release()
        release.wait(5)

    pool = WorkerPool(limit)
    runner = threading.Thread(target=pool.run, args=(items(), task))
    runner.start()
    try:
        for _ in range(limit):
            assert started.acquire(timeout=5)
        time.sleep(0.1)
        # Two items running plus at most one waiting for a slot
        assert len(consumed) <= limit + 1
    finally:
        release.set()
        runner.join(5)

    assert not runner.is_alive()
    assert consumed == list(range(10))


def test_run_waits_for_all_tasks():
    finished = []
    lock = threading.Lock()

    def task(item):
        time.sleep(0.02)
        with lock:
            finished.append(item)

    WorkerPool(4).run(range(12), task)

    assert sorted(finished) == list(range(12))


def test_task_errors_are_contained():
    def task(item):
        if item % 2:
            raise RuntimeError(f"failed {item}")

    stats = WorkerPool(3).run(range(10), task)

    assert stats.dispatched == 10
    assert stats.failed == 5
    assert stats.completed == 5


def test_empty_input():
    stats = WorkerPool(2).run([], lambda item: None)
    assert stats.dispatched == 0
    assert stats.peak_in_flight == 0


def test_limit_must_be_positive():
    with pytest.raises(ValueError):
        WorkerPool(0)


def test_concurrent_runs_keep_separate_counts():
    pool = WorkerPool(2)
    barrier = threading.Barrier(4, timeout=5)
    results = {}

    def task(item):
        # Both runs have every slot busy at the same moment
        barrier.wait()
        time.sleep(0.01)

    def run(name):
        results[name] = pool.run(range(2), task)

    threads = [threading.Thread(target=run, args=(name,)) for name in ("a", "b")]
    for t in threads:
        t.start()
    for t in threads:
        t.join(10)

    assert all(not t.is_alive() for t in threads)
    for stats in results.values():
        assert stats.completed == 2
        assert stats.peak_in_flight == 2
