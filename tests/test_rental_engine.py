import sqlite3
from datetime import datetime, timedelta

import pytest

from conftest import run_ticks
from database.models import UnitState
from database.repository import StateRepository
from engine.errors import RestartConfirmationRequired, UnitNotFound
from engine.notifications import SignalKind
from engine.rental import RentalEngine, delete_job_id
from engine.timer import EventKind
from utils.colors import AMBER, RED


def notice_texts(engine):
    return [notice.text for notice in engine.notifications.notices]


def test_load_creates_defaults(engine):
    assert [unit.name for unit in engine.units] == ["PlayBox 1", "PlayBox 2", "PlayBox 3"]
    assert len(engine.log) == 0
    assert [user.username for user in engine.access.users] == ["admin"]
    assert StateRepository.load_units() is not None
    assert StateRepository.load_users() is not None


def test_state_survives_reload(engine, deferrer, clock):
    engine.set_notes(1, "VIP")
    engine.start(1, 0, 25)
    run_ticks(engine, clock, deferrer, 5)
    engine.create_user("kasir", "pass")

    restored = RentalEngine(deferrer, clock=clock)
    restored.load()

    unit = restored.get_unit(1)
    assert unit.notes == "VIP"
    assert unit.active
    assert unit.remaining_sec == 1495
    assert restored.access.find_user("kasir") is not None


def test_start_converts_minutes_to_seconds(engine, sink):
    event = engine.start(1, 0, 25)

    unit = engine.get_unit(1)
    assert event.kind is EventKind.STARTED
    assert unit.remaining_sec == 1500
    assert unit.inputs == {'hours': 0, 'mins': 25}
    assert SignalKind.START in sink.kinds()


def test_zero_duration_start_runs_until_stopped(engine, deferrer, clock):
    engine.start(1, 0, 0)

    assert engine.get_unit(1).state is UnitState.RUNNING
    assert run_ticks(engine, clock, deferrer, 5) == []
    assert engine.get_unit(1).active

    event = engine.stop(1)

    assert event.entry is None
    assert len(engine.log) == 0
    assert engine.get_unit(1).state is UnitState.IDLE


def test_restart_with_zero_duration_asks_confirmation(engine, deferrer, clock):
    engine.start(1, 0, 25)
    run_ticks(engine, clock, deferrer, 10)

    with pytest.raises(RestartConfirmationRequired):
        engine.start(1, 0, 0)

    assert engine.get_unit(1).remaining_sec == 1490


def test_restart_needs_confirmation(engine, deferrer, clock):
    engine.start(1, 0, 25)
    run_ticks(engine, clock, deferrer, 10)

    with pytest.raises(RestartConfirmationRequired):
        engine.start(1, 1, 0)

    engine.start(1, confirm_restart=True)

    assert engine.get_unit(1).remaining_sec == 3600
    assert len(engine.log) == 0


def test_refused_restart_keeps_staged_inputs_in_storage(engine, deferrer, clock):
    engine.start(1, 0, 25)
    run_ticks(engine, clock, deferrer, 10)

    with pytest.raises(RestartConfirmationRequired):
        engine.start(1, 1, 0)

    stored = StateRepository.load_units()[0]
    assert stored.inputs == {'hours': 1, 'mins': 0}
    assert stored.inputs == engine.get_unit(1).inputs


def test_unknown_unit(engine):
    with pytest.raises(UnitNotFound):
        engine.start(42, 1, 0)


def test_warning_notice_once(engine, deferrer, clock, sink):
    engine.start(1, 0, 11)

    events = run_ticks(engine, clock, deferrer, 61)

    assert [event.kind for event in events] == [EventKind.WARNING]
    assert engine.get_unit(1).color == AMBER
    assert "PlayBox 1 — осталось 10 мин" in notice_texts(engine)
    assert sink.kinds().count(SignalKind.WARNING) == 1
    assert (SignalKind.WARNING, 1.0, 3) in sink.signals


def test_finish_logs_entry_and_notifies(engine, deferrer, clock, sink):
    engine.set_price(2, 60000)
    engine.start(2, 0, 1)

    events = run_ticks(engine, clock, deferrer, 60)

    assert [event.kind for event in events] == [EventKind.FINISHED]
    entry = engine.log.entries[0]
    assert entry.unit == "PlayBox 2"
    assert entry.duration_minutes == 1
    assert entry.cost == 1000
    assert engine.get_unit(2).state is UnitState.FINISHED
    assert "PlayBox 2 — время вышло!" in notice_texts(engine)
    assert (SignalKind.FINISHED, 1.0, 6) in sink.signals
    assert StateRepository.load_logs() == engine.log.entries


def test_finish_is_announced_when_log_write_fails(engine, deferrer, clock, sink, monkeypatch):
    engine.start(1, 0, 1)
    run_ticks(engine, clock, deferrer, 59)

    def locked(entries):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(StateRepository, "save_logs", staticmethod(locked))
    clock.advance(1)

    with pytest.raises(sqlite3.OperationalError):
        engine.tick()

    assert engine.get_unit(1).state is UnitState.FINISHED
    assert SignalKind.FINISHED in sink.kinds()
    assert "PlayBox 1 — время вышло!" in notice_texts(engine)


def test_stop_is_announced_when_log_write_fails(engine, deferrer, clock, sink, monkeypatch):
    engine.start(1, 0, 25)
    run_ticks(engine, clock, deferrer, 125)

    def locked(entries):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(StateRepository, "save_logs", staticmethod(locked))

    with pytest.raises(sqlite3.OperationalError):
        engine.stop(1)

    assert SignalKind.STOP in sink.kinds()
    assert "PlayBox 1 остановлена — 2 мин" in notice_texts(engine)

def test_stop_logs_used_time(engine, deferrer, clock):
    engine.start(1, 0, 25)
    run_ticks(engine, clock, deferrer, 125)

    event = engine.stop(1)

    assert event.minutes == 2
    entry = engine.log.entries[0]
    assert (entry.duration_minutes, entry.cost) == (2, 1042)
    assert engine.total_revenue() == 1042
    assert "PlayBox 1 остановлена — 2 мин" in notice_texts(engine)


def test_units_finishing_in_same_tick_are_all_logged(engine, deferrer, clock):
    engine.start(1, 0, 1)
    engine.start(2, 0, 1)

    run_ticks(engine, clock, deferrer, 60)

    assert sorted(entry.unit for entry in engine.log) == ["PlayBox 1", "PlayBox 2"]


def test_delete_is_purged_after_window(engine, deferrer, clock):
    notice = engine.request_delete(3)

    assert notice.has_action
    assert notice.color == RED
    assert engine.get_unit(3).is_pending_delete
    assert 3 in [unit.id for unit in engine.units]

    clock.advance(5.2)
    deferrer.run_due(clock.now)

    assert 3 not in [unit.id for unit in engine.units]
    assert "PlayBox 3 удалена" in notice_texts(engine)
    assert [unit.id for unit in StateRepository.load_units()] == [1, 2]


def test_undo_inside_window_keeps_unit(engine, deferrer, clock):
    notice = engine.request_delete(3)
    clock.advance(2)

    assert engine.notifications.trigger(notice.id)

    assert not engine.get_unit(3).is_pending_delete
    assert delete_job_id(3) not in deferrer.jobs
    assert "Удаление отменено" in notice_texts(engine)

    clock.advance(10)
    deferrer.run_due(clock.now)
    assert engine.get_unit(3).name == "PlayBox 3"


def test_undo_after_deadline_does_nothing(engine, deferrer, clock):
    engine.request_delete(3)
    clock.advance(5.1)

    assert not engine.undo_delete(3)

    clock.advance(1)
    deferrer.run_due(clock.now)
    assert 3 not in [unit.id for unit in engine.units]


def test_pending_delete_unit_keeps_running(engine, deferrer, clock):
    engine.start(1, 0, 25)
    engine.request_delete(1)

    run_ticks(engine, clock, deferrer, 3)

    assert engine.get_unit(1).remaining_sec == 1497


def test_pending_delete_is_rescheduled_on_load(engine, deferrer, clock):
    engine.request_delete(2)
    deferrer.jobs.clear()

    restored = RentalEngine(deferrer, clock=clock)
    restored.load()

    assert delete_job_id(2) in deferrer.jobs
    clock.advance(6)
    deferrer.run_due(clock.now)
    assert 2 not in [unit.id for unit in restored.units]


def test_purge_expired_catches_missed_jobs(engine, deferrer, clock):
    engine.request_delete(2)
    deferrer.jobs.clear()
    clock.advance(6)

    removed = engine.purge_expired()

    assert [unit.id for unit in removed] == [2]


def test_export_with_future_start_produces_nothing(engine, deferrer, clock):
    engine.start(1, 0, 25)
    run_ticks(engine, clock, deferrer, 60)
    engine.stop(1)

    result = engine.export_logs(clock.now + timedelta(days=1))

    assert result is None
    assert "Нет записей за выбранный период" in notice_texts(engine)


def test_export_builds_csv(engine, deferrer, clock):
    engine.start(1, 0, 25)
    run_ticks(engine, clock, deferrer, 60)
    engine.stop(1)

    filename, content = engine.export_logs(datetime(2024, 5, 1), datetime(2024, 5, 1, 23, 59))

    assert filename == "playbox_logs_2024-05-01.csv"
    lines = content.decode('utf-8').split('\n')
    assert lines[0] == '"Timestamp","Unit","Minutes","CostRp","Notes"'
    assert '"PlayBox 1","1","500"' in lines[1]


def test_total_is_independent_of_filter(engine, deferrer, clock):
    engine.start(1, 0, 25)
    run_ticks(engine, clock, deferrer, 125)
    engine.stop(1)

    assert engine.filter_logs(clock.now + timedelta(days=1)) == []
    assert engine.total_revenue() == 1042


def test_clear_logs(engine, deferrer, clock):
    engine.start(1, 0, 1)
    run_ticks(engine, clock, deferrer, 60)

    assert engine.clear_logs() == 1
    assert len(engine.log) == 0
    assert StateRepository.load_logs() == []


def test_customer_view(engine, deferrer, clock):
    engine.start(1, 0, 10)
    run_ticks(engine, clock, deferrer, 300)

    view = engine.customer_view(1)

    assert view.name == "PlayBox 1"
    assert view.remaining == "05:00"
    assert view.state_label == "Идёт игра"
    assert view.progress == pytest.approx(0.5)
    assert engine.customer_view(2).state_label == "Свободна"


def test_login_session_is_persisted(engine):
    session = engine.login(100, "admin", "1234")

    assert session.is_admin
    assert StateRepository.load_sessions()[100].username == "admin"

    assert engine.logout(100)
    assert StateRepository.load_sessions() == {}


def test_notice_queue_is_bounded(engine):
    for i in range(10):
        engine.add_unit()

    assert len(engine.notifications.notices) == 6
    assert len(engine.units) == 13
