from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from gluquant.acquisition import ServiceStats
from gluquant.service import CaptureWatchdog, WatchdogEvent


class StubService:
    def __init__(self) -> None:
        self.stats = ServiceStats()


def _watchdog(service: StubService, events: list[WatchdogEvent], timeout_s: float = 5.0) -> CaptureWatchdog:
    return CaptureWatchdog(service, timeout_s=timeout_s, poll_interval_s=0.1, on_event=events.append)


def test_watchdog_waits_for_first_window() -> None:
    service = StubService()
    events: list[WatchdogEvent] = []
    watchdog = _watchdog(service, events)

    watchdog.check(now=datetime.now(timezone.utc) + timedelta(hours=1))

    assert events == []
    assert not watchdog.alert_active


def test_watchdog_emits_timeout_then_recovery() -> None:
    service = StubService()
    events: list[WatchdogEvent] = []
    watchdog = _watchdog(service, events)
    started = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
    service.stats.last_window_started = started

    watchdog.check(now=started + timedelta(seconds=2))
    assert events == []

    # Later windows must not reset the silence measurement.
    service.stats.last_window_started = started + timedelta(seconds=5)
    watchdog.check(now=started + timedelta(seconds=6))
    assert [event.kind for event in events] == ['timeout']
    assert events[0].message == 'No data received within watchdog timeout'
    assert events[0].payload['elapsed_s'] == pytest.approx(6.0)
    assert watchdog.alert_active

    watchdog.check(now=started + timedelta(seconds=30))
    assert len(events) == 1

    service.stats.chunks = 3
    service.stats.last_chunk_at = started + timedelta(seconds=31)
    watchdog.check(now=started + timedelta(seconds=31))
    assert [event.kind for event in events] == ['timeout', 'recovery']
    assert events[1].payload['chunks'] == 3
    assert not watchdog.alert_active


def test_watchdog_measures_from_last_chunk() -> None:
    service = StubService()
    events: list[WatchdogEvent] = []
    watchdog = _watchdog(service, events, timeout_s=10.0)
    started = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
    service.stats.last_window_started = started
    service.stats.chunks = 1
    service.stats.last_chunk_at = started + timedelta(seconds=8)

    watchdog.check(now=started + timedelta(seconds=8))
    watchdog.check(now=started + timedelta(seconds=15))
    assert events == []

    watchdog.check(now=started + timedelta(seconds=18))
    assert [event.kind for event in events] == ['timeout']


def test_watchdog_handler_errors_are_logged(caplog) -> None:
    service = StubService()
    started = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
    service.stats.last_window_started = started

    def _broken(event: WatchdogEvent) -> None:
        raise RuntimeError('handler failed')

    watchdog = CaptureWatchdog(service, timeout_s=1.0, poll_interval_s=0.1, on_event=_broken)

    with caplog.at_level('ERROR', logger='gluquant.service.watchdog'):
        watchdog.check(now=started + timedelta(seconds=2))

    assert watchdog.alert_active
    assert 'Watchdog event handler failed' in caplog.text


@pytest.mark.parametrize('kwargs', [{'timeout_s': 0}, {'poll_interval_s': -1}])
def test_watchdog_rejects_invalid_intervals(kwargs) -> None:
    with pytest.raises(ValueError):
        CaptureWatchdog(SimpleNamespace(stats=ServiceStats()), **kwargs)


def test_watchdog_thread_start_stop() -> None:
    watchdog = CaptureWatchdog(StubService(), timeout_s=1.0, poll_interval_s=0.01)

    watchdog.start()
    watchdog.start()
    watchdog.stop()

    assert not watchdog.alert_active
