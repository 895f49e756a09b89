from datetime import datetime

from database.database import get_db
from database.models import OperatorSession, SessionLogEntry, Unit
from database.repository import LOGS_KEY, UNITS_KEY, StateRepository


def test_missing_records_load_as_none(db_path):
    assert StateRepository.load_units() is None
    assert StateRepository.load_logs() is None
    assert StateRepository.load_users() is None
    assert StateRepository.load_sessions() is None


def test_units_survive_roundtrip(db_path):
    unit = Unit(id=2, name="PlayBox 2", price_per_hour=30000, notes="VIP",
                active=True, remaining_sec=300, initial_sec=1500, warned=True,
                pending_delete=datetime(2024, 5, 1, 12, 0, 5))
    unit.inputs = {'hours': 0, 'mins': 25}

    StateRepository.save_units([unit])
    loaded = StateRepository.load_units()

    assert loaded == [unit]


def test_stored_records_use_camel_case_keys(db_path):
    StateRepository.save_logs([SessionLogEntry(
        unit="PlayBox 1", duration_minutes=2, cost=1042, notes='',
        timestamp=datetime(2024, 5, 1, 12, 2, 5),
    )])

    raw = StateRepository.get(LOGS_KEY)

    assert raw == [{
        'unit': "PlayBox 1",
        'durationMinutes': 2,
        'cost': 1042,
        'notes': '',
        'timestamp': "2024-05-01T12:02:05",
    }]


def test_sessions_keyed_by_telegram_id(db_path):
    session = OperatorSession("admin", "admin", datetime(2024, 5, 1, 12, 0))

    StateRepository.save_sessions({100: session})

    assert StateRepository.load_sessions() == {100: session}


def test_corrupted_record_falls_back_to_none(db_path):
    with get_db() as conn:
        conn.execute(
            "INSERT INTO kv_store (key, value) VALUES (?, ?)",
            (UNITS_KEY, "{not json"),
        )

    assert StateRepository.load_units() is None


def test_record_with_wrong_shape_falls_back_to_none(db_path):
    StateRepository.put(UNITS_KEY, [{"name": "без id"}])

    assert StateRepository.load_units() is None
