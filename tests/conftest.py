"""
Gemeinsame pytest-Fixtures.

Stellt bereit:
- FixedClock: steuerbare Uhr (heute = fester Kalendertag)
- DictStore: Blob-Speicher im Speicher, optional mit simulierten Schreibfehlern
- engine / sqlite_engine: vorkonfigurierte HabitTrackingEngine-Instanzen
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Iterator, Optional

import pytest

from habit_tracker.db import PersistenceError
from habit_tracker.services import HabitTrackingEngine


class FixedClock:
    """Uhr mit festem "heute"; `now()` liefert 09:30 Uhr an diesem Tag."""

    def __init__(self, today: date) -> None:
        self._today = today

    def set(self, today: date) -> None:
        self._today = today

    def advance(self, days: int = 1) -> None:
        self._today += timedelta(days=days)

    def now(self) -> datetime:
        return datetime.combine(self._today, time(9, 30))

    def today(self) -> date:
        return self._today


class DictStore:
    """Blob-Speicher auf Basis eines dict (erfüllt BlobStoreProtocol)."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.saves: list[str] = []
        self.fail_on_save = False
        self.fail_on_load = False
        self.fail_exc: type[Exception] = PersistenceError

    def load(self, key: str) -> Optional[str]:
        if self.fail_on_load:
            raise self.fail_exc(f"load {key} fehlgeschlagen")
        return self.data.get(key)

    def save(self, key: str, value: str) -> None:
        if self.fail_on_save:
            raise self.fail_exc(f"save {key} fehlgeschlagen")
        self.data[key] = value
        self.saves.append(key)


TODAY = date(2025, 3, 15)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(TODAY)


@pytest.fixture
def store() -> DictStore:
    return DictStore()


@pytest.fixture
def engine(store: DictStore, clock: FixedClock) -> HabitTrackingEngine:
    return HabitTrackingEngine.from_store(store, clock=clock)


@pytest.fixture
def db_path(tmp_path) -> str:
    return str(tmp_path / "habits.db")


@pytest.fixture
def sqlite_engine(db_path: str, clock: FixedClock) -> Iterator[HabitTrackingEngine]:
    eng = HabitTrackingEngine.bootstrap(db_path=db_path, clock=clock)
    yield eng
    eng.close()


@pytest.fixture
def habit(engine: HabitTrackingEngine):
    return engine.add_habit("Read", "📖", "#4F86F7")
