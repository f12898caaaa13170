"""
Interfaces (Protocols) für Persistenz und Zeitquelle.

Zweck:
    Entkoppelt Engine und Repositories von der konkreten Speicherung (hier: SQLite)
    und von der Systemuhr. Alle Schichten typisieren nur gegen diese kleinen Verträge.

Inhalt:
    - CursorProtocol: minimales Cursor-Verhalten (fetchone/fetchall)
    - DatabaseProtocol: minimale DB-API (execute/executescript + Transaktionen)
    - BlobStoreProtocol: "Blob unter Schlüssel laden/speichern"
    - ClockProtocol: aktueller Zeitpunkt und lokaler Kalendertag

Hinweise:
    Die SQLite-Implementierungen liegen in `db.py` (SQLiteDatabase, SystemClock) und
    `repositories.py` (KeyValueStore). Tests ersetzen Uhr und Speicher durch eigene Objekte.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional, Protocol, Sequence


class CursorProtocol(Protocol):
    """Die Cursor-Funktionen, die der KeyValueStore tatsächlich nutzt."""

    def fetchone(self) -> Any: ...
    def fetchall(self) -> list[Any]: ...


class DatabaseProtocol(Protocol):
    """
    Minimales Datenbank-Interface für den Blob-Speicher.

    Hinweise:
        `SQLiteDatabase` erfüllt dieses Protocol; der KeyValueStore führt ausschließlich
        darüber SQL-Befehle aus.
    """

    def execute(self, sql: str, params: Sequence[Any] = ()) -> CursorProtocol: ...
    def executescript(self, sql_script: str) -> None: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...
    def close(self) -> None: ...


class BlobStoreProtocol(Protocol):
    """
    Schlüssel/Wert-Speicher für serialisierte Blobs.

    Zweck:
        Die Engine speichert Habits und erledigte Tage als zwei unabhängige Blobs unter
        festen Schlüsseln. Referenzielle Integrität stellt nicht der Speicher, sondern
        die Engine sicher.

    Ausnahmen:
        Implementierungen melden Speicherfehler als `PersistenceError`. `OSError` wird
        von den Repositories ebenfalls in `PersistenceError` übersetzt; andere Ausnahmen
        gelten als Programmierfehler und werden nicht abgefangen.
    """

    def load(self, key: str) -> Optional[str]: ...
    def save(self, key: str, value: str) -> None: ...


class ClockProtocol(Protocol):
    """Zeitquelle der Engine ("heute" ist immer der lokale Kalendertag)."""

    def now(self) -> datetime: ...
    def today(self) -> date: ...
