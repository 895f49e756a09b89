from datetime import datetime

from database.models import SessionLogEntry
from engine.session_log import SessionLog


def entry(unit, day, cost=1000, hour=12):
    return SessionLogEntry(
        unit=unit,
        duration_minutes=10,
        cost=cost,
        notes='',
        timestamp=datetime(2024, 5, day, hour, 0, 0),
    )


def test_newest_entries_first():
    log = SessionLog()
    log.append(entry("A", 1))
    log.append(entry("B", 2))
    log.extend([entry("C", 3), entry("D", 3)])

    assert [e.unit for e in log] == ["D", "C", "B", "A"]
    assert [e.unit for e in log.recent(2)] == ["D", "C"]


def test_filter_bounds_are_inclusive():
    log = SessionLog([entry("C", 3), entry("B", 2), entry("A", 1)])

    assert [e.unit for e in log.filter(datetime(2024, 5, 2, 12, 0))] == ["C", "B"]
    assert [e.unit for e in log.filter(None, datetime(2024, 5, 2, 12, 0))] == ["B", "A"]
    assert [e.unit for e in log.filter(datetime(2024, 5, 2), datetime(2024, 5, 2, 23, 59))] == ["B"]
    assert len(log.filter()) == 3


def test_total_ignores_filter():
    log = SessionLog([entry("B", 2, cost=1042), entry("A", 1, cost=30000)])

    assert log.filter(datetime(2024, 5, 2)) != log.entries
    assert log.total() == 31042


def test_clear_returns_count():
    log = SessionLog([entry("A", 1), entry("B", 2)])

    assert log.clear() == 2
    assert len(log) == 0
    assert log.total() == 0
