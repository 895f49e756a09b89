import os
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("BOT_TOKEN", "test-token")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from config import settings
from database.database import init_db
from engine.rental import RentalEngine


class FakeClock:
    """Управляемые часы для движка"""

    def __init__(self, start=datetime(2024, 5, 1, 12, 0, 0)):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


class FakeDeferrer:
    """Отложенные задачи без планировщика: выполняются по run_due()"""

    def __init__(self):
        self.jobs = {}

    def schedule(self, job_id, run_at, callback, *args):
        self.jobs[job_id] = (run_at, callback, args)

    def cancel(self, job_id):
        self.jobs.pop(job_id, None)

    def run_due(self, now):
        ran = 0
        while True:
            due = sorted(
                (run_at, job_id) for job_id, (run_at, _, _) in self.jobs.items()
                if run_at <= now
            )
            if not due:
                return ran
            _, job_id = due[0]
            _, callback, args = self.jobs.pop(job_id)
            callback(*args)
            ran += 1


class RecordingSink:
    def __init__(self):
        self.signals = []

    def signal(self, kind, volume, repeat):
        self.signals.append((kind, volume, repeat))

    def kinds(self):
        return [kind for kind, _, _ in self.signals]


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def deferrer():
    return FakeDeferrer()


@pytest.fixture()
def sink():
    return RecordingSink()


@pytest.fixture()
def db_path(tmp_path, monkeypatch):
    path = tmp_path / "playbox.db"
    monkeypatch.setattr(settings, "DB_PATH", str(path))
    init_db()
    return path


@pytest.fixture()
def engine(db_path, deferrer, clock, sink):
    rental = RentalEngine(deferrer, clock=clock)
    rental.load()
    rental.notifications.add_sink(sink)
    return rental


def run_ticks(engine, clock, deferrer, count):
    """count секунд работы: часы, тик и отложенные задачи"""
    events = []
    for _ in range(count):
        clock.advance(1)
        events.extend(engine.tick())
        deferrer.run_due(clock.now)
    return events
