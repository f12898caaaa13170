from __future__ import annotations

# -----------------------------------------------------------------------------
# Infrastructure: SQLite DB + Systemuhr
# -----------------------------------------------------------------------------
# Enthält:
# - SQLiteDatabase: dünner Adapter um sqlite3.Connection (für DatabaseProtocol)
# - connect(): öffnet DB (Default-Pfad: data/habits.db oder $HABIT_TRACKER_DB)
# - create_schema(): legt die Tabelle `kv_store` an (optional reset_db für Demo/Test)
# - SystemClock: echte Uhr für ClockProtocol
# -----------------------------------------------------------------------------


"""SQLite-Infrastruktur des Habit-Trackers.

Zweck:
    Stellt die konkrete SQLite-Anbindung bereit. Gespeichert wird nur eine einzige
    Schlüssel/Wert-Tabelle; Habits und erledigte Tage liegen dort als JSON-Blobs.

Inhalt:
    - PersistenceError: eigene Fehlerart für Speicherprobleme
    - SQLiteDatabase: Adapter um `sqlite3.Connection` passend zu `DatabaseProtocol`
    - connect() / create_schema()
    - SystemClock
"""

import logging
import os
import sqlite3
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional, Sequence

from habit_tracker.db_protocol import DatabaseProtocol

__all__ = [
    "DB_PATH_ENV",
    "PersistenceError",
    "SQLiteDatabase",
    "SystemClock",
    "connect",
    "create_schema",
]

logger = logging.getLogger(__name__)

DB_PATH_ENV = "HABIT_TRACKER_DB"


class PersistenceError(RuntimeError):
    """
    Speichern oder Laden eines Blobs ist fehlgeschlagen.

    Zweck:
        Trennt Speicherprobleme (I/O, gesperrte DB, ...) klar von fachlichen Fehlern.
        Die Engine protokolliert diese Fehler und arbeitet mit dem In-Memory-Zustand weiter.
    """


class SQLiteDatabase:
    """
    SQLite-Adapter passend zu `DatabaseProtocol`.

    Zweck:
        Kapselt eine `sqlite3.Connection`; der KeyValueStore sieht nur execute/commit/rollback.
    """

    def __init__(self, conn: sqlite3.Connection, path: Optional[Path] = None) -> None:
        """
        Parameter:
            conn (sqlite3.Connection): Offene Datenbankverbindung.
            path (Path | None): Dateipfad (nur Information/Logging; `None` bei ":memory:").
        """

        self._conn = conn
        self.path = path

    def execute(self, sql: str, params: Sequence[Any] = ()) -> Any:
        return self._conn.execute(sql, params)

    def executescript(self, sql_script: str) -> None:
        self._conn.executescript(sql_script)

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        """
        Schließt die Datenbankverbindung.

        Hinweise:
            Im Prototyp übernimmt `HabitTrackingEngine.close` das kontrollierte Schließen.
        """

        self._conn.close()


def _default_db_path() -> Path:
    """
    Ermittelt den Standardpfad der SQLite-Datenbank.

    Zweck:
        Nutzt `$HABIT_TRACKER_DB`, falls gesetzt; sonst `data/habits.db` neben dem Paket.

    Rückgabe:
        Path: Vollständiger Pfad zur Datenbankdatei.

    Hinweise:
        Das Zielverzeichnis wird bei Bedarf automatisch erstellt.
    """

    override = os.environ.get(DB_PATH_ENV)
    if override:
        path = Path(override).expanduser()
    else:
        project_root = Path(__file__).resolve().parents[1]
        path = project_root / "data" / "habits.db"
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def connect(db_path: Optional[str | os.PathLike[str]] = None) -> SQLiteDatabase:
    """
    Öffnet eine SQLite-Verbindung und gibt einen `SQLiteDatabase`-Adapter zurück.

    Parameter:
        db_path (str | PathLike | None): Pfad zur Datenbankdatei oder ":memory:".

    Rückgabe:
        SQLiteDatabase: Adapter-Objekt, das `DatabaseProtocol` erfüllt.

    Ausnahmen:
        PersistenceError: Wenn die Datei nicht geöffnet werden kann.
    """

    if db_path is not None and str(db_path) == ":memory:":
        path: Optional[Path] = None
        target: str | Path = ":memory:"
    else:
        path = Path(db_path) if db_path is not None else _default_db_path()
        target = path

    try:
        conn = sqlite3.connect(target)
    except sqlite3.Error as exc:
        raise PersistenceError(f"Datenbank konnte nicht geöffnet werden: {target}") from exc
    conn.row_factory = sqlite3.Row
    logger.debug("SQLite geöffnet: %s", target)
    return SQLiteDatabase(conn, path)


def create_schema(db: DatabaseProtocol, reset_db: bool = False) -> None:
    """
    Legt das Datenbankschema an.

    Zweck:
        Erstellt die Tabelle `kv_store` (ein Blob pro Schlüssel). Optional wird sie vorher
        gelöscht, um einen reproduzierbaren Demo-Lauf zu erhalten.

    Parameter:
        db (DatabaseProtocol): Datenbank-Adapter.
        reset_db (bool): Wenn True, werden bestehende Daten verworfen.
    """

    if reset_db:
        db.executescript("DROP TABLE IF EXISTS kv_store;")

    db.executescript(
        """
        -- Ein Blob pro Schlüssel ("habits", "completions")
        CREATE TABLE IF NOT EXISTS kv_store(
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
        """
    )
    db.commit()


class SystemClock:
    """Echte Uhr: lokale Zeit des Rechners."""

    def now(self) -> datetime:
        return datetime.now()

    def today(self) -> date:
        return date.today()
