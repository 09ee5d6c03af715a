import os
import sys
import threading
import time

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from bakumania.client.debounce import Debouncer
from bakumania.client.pool import run_bounded


def test_zero_delay_runs_inline():
    calls = []
    d = Debouncer(0)
    d.schedule(calls.append, 'x')
    assert calls == ['x']
    assert not d.pending


def test_restart_keeps_only_last_callback():
    calls = []
    d = Debouncer(30)
    d.schedule(calls.append, 'first')
    d.schedule(calls.append, 'second')
    assert d.pending
    assert d.flush() is True
    assert calls == ['second']
    assert d.flush() is False


def test_cancel_drops_pending():
    calls = []
    d = Debouncer(30)
    d.schedule(calls.append, 'x')
    assert d.cancel() is True
    assert d.cancel() is False
    assert not d.flush()
    assert calls == []


def test_timer_fires_once_after_delay():
    fired = threading.Event()
    calls = []

    def record(tag):
        calls.append(tag)
        fired.set()

    d = Debouncer(0.05)
    d.schedule(record, 'a')
    d.schedule(record, 'b')
    assert fired.wait(2)
    time.sleep(0.1)
    assert calls == ['b']


def test_callback_errors_are_contained():
    d = Debouncer(0)

    def boom():
        raise RuntimeError('nope')

    d.schedule(boom)  # logged, not raised


def test_run_bounded_collects_successes():
    def square(n):
        if n == 3:
            raise ValueError('bad key')
        return n * n

    assert run_bounded(square, [1, 2, 3, 2], max_in_flight=2) == {1: 1, 2: 4}
    assert run_bounded(square, []) == {}


def test_run_bounded_limits_concurrency():
    lock = threading.Lock()
    active = [0]
    peak = [0]

    def work(_):
        with lock:
            active[0] += 1
            peak[0] = max(peak[0], active[0])
        time.sleep(0.05)
        with lock:
            active[0] -= 1
        return True

    result = run_bounded(work, range(8), max_in_flight=3)
    assert len(result) == 8
    assert peak[0] <= 3


def test_run_bounded_rejects_zero_limit():
    with pytest.raises(ValueError):
        run_bounded(str, [1], max_in_flight=0)
