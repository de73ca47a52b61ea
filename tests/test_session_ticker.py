import threading

from viva_portal.core.services.session_ticker import SessionTicker


def test_ticker_calls_back_until_stopped():
    ticked = threading.Event()
    calls = []

    def on_tick():
        calls.append(1)
        if len(calls) >= 3:
            ticked.set()

    ticker = SessionTicker(on_tick, interval_seconds=0.01)
    thread = ticker.start()
    assert ticked.wait(timeout=2.0)
    ticker.stop(timeout=2.0)

    assert thread.is_alive() is False
    assert len(calls) >= 3


def test_ticker_keeps_running_after_a_failing_tick():
    ticked = threading.Event()
    calls = []

    def on_tick():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")
        ticked.set()

    ticker = SessionTicker(on_tick, interval_seconds=0.01)
    ticker.start()
    try:
        assert ticked.wait(timeout=2.0)
    finally:
        ticker.stop(timeout=2.0)
