from __future__ import annotations

# -----------------------------------------------------------------------------
# Repository layer (Persistence)
# -----------------------------------------------------------------------------
# Repositories kapseln *sämtliche* Speicherzugriffe. Sie enthalten keine GUI-Logik
# und nur minimale fachliche Logik.
#
# Aufbau:
# - KeyValueStore: SQL auf der Tabelle `kv_store` (Blob laden/speichern per Schlüssel)
# - HabitRepository / CompletionRepository: JSON-Codec für die zwei Blobs
#   "habits" und "completions"; sie kennen nur `BlobStoreProtocol`.
# -----------------------------------------------------------------------------


import json
import logging
import sqlite3
from datetime import datetime
from typing import Iterable, Mapping, Optional
from uuid import UUID

from habit_tracker.db import PersistenceError
from habit_tracker.db_protocol import BlobStoreProtocol, DatabaseProtocol
from habit_tracker.models import Habit, parse_day_key

logger = logging.getLogger(__name__)

HABITS_KEY = "habits"
COMPLETIONS_KEY = "completions"


class KeyValueStore:
    """
    Blob-Speicher auf SQLite (erfüllt `BlobStoreProtocol`).

    Zweck:
        Lädt und speichert Text-Blobs unter einem Schlüssel. `sqlite3.Error` wird in
        `PersistenceError` übersetzt, damit höhere Schichten nicht von sqlite3 abhängen.
    """

    def __init__(self, db: DatabaseProtocol) -> None:
        self.db = db

    def load(self, key: str) -> Optional[str]:
        """
        Lädt den Blob zu `key`.

        Rückgabe:
            str | None: Gespeicherter Text oder `None`, falls (noch) nichts gespeichert ist.

        Ausnahmen:
            PersistenceError: Bei Datenbankfehlern.
        """

        try:
            cursor = self.db.execute("SELECT value FROM kv_store WHERE key=?", (key,))
            row = cursor.fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Laden von '{key}' fehlgeschlagen: {exc}") from exc
        if not row:
            return None
        return str(row["value"])

    def save(self, key: str, value: str) -> None:
        """
        Schreibt den Blob zu `key` (Upsert) und committet.

        Ausnahmen:
            PersistenceError: Bei Datenbankfehlern (die Transaktion wird zurückgerollt).
        """

        try:
            self.db.execute(
                """
                INSERT INTO kv_store(key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value=excluded.value,
                    updated_at=excluded.updated_at
                """,
                (key, value, datetime.now().isoformat(timespec="seconds")),
            )
            self.db.commit()
        except sqlite3.Error as exc:
            try:
                self.db.rollback()
            except sqlite3.Error:
                logger.debug("Rollback nach Fehler beim Speichern nicht möglich", exc_info=True)
            raise PersistenceError(f"Speichern von '{key}' fehlgeschlagen: {exc}") from exc


def _load_blob(store: BlobStoreProtocol, key: str) -> Optional[str]:
    # Datei-basierte Speicher melden I/O-Fehler als OSError
    try:
        return store.load(key)
    except OSError as exc:
        raise PersistenceError(f"Laden von '{key}' fehlgeschlagen: {exc}") from exc


def _save_blob(store: BlobStoreProtocol, key: str, value: str) -> None:
    try:
        store.save(key, value)
    except OSError as exc:
        raise PersistenceError(f"Speichern von '{key}' fehlgeschlagen: {exc}") from exc


# -----------------------------
# JSON codecs
# -----------------------------
def encode_habits(habits: Iterable[Habit]) -> str:
    """
    Serialisiert Habits in der gespeicherten Reihenfolge.

    Format:
        Liste von `{id, title, emoji, colorHex, createdDate}`; `createdDate` als ISO-8601.
    """

    payload = [
        {
            "id": str(h.id),
            "title": h.title,
            "emoji": h.emoji,
            "colorHex": h.color_tag,
            "createdDate": h.created_date.isoformat(),
        }
        for h in habits
    ]
    return json.dumps(payload, ensure_ascii=False)


def decode_habits(blob: str) -> list[Habit]:
    """
    Gegenstück zu `encode_habits`.

    Ausnahmen:
        ValueError/KeyError/TypeError: Bei beschädigtem oder unvollständigem Blob.
    """

    raw = json.loads(blob)
    if not isinstance(raw, list):
        raise ValueError("habits-Blob muss eine Liste sein")
    return [
        Habit(
            id=UUID(str(item["id"])),
            title=item["title"],
            emoji=item["emoji"],
            color_tag=item["colorHex"],
            created_date=datetime.fromisoformat(item["createdDate"]),
        )
        for item in raw
    ]


def encode_completions(completions: Mapping[str, Iterable[str]]) -> str:
    """Serialisiert habit-id → sortierte Liste von Tages-Schlüsseln."""

    payload = {habit_id: sorted(days) for habit_id, days in sorted(completions.items())}
    return json.dumps(payload)


def decode_completions(blob: str) -> dict[str, set[str]]:
    """
    Gegenstück zu `encode_completions`.

    Hinweise:
        Jeder Tages-Schlüssel wird geprüft (`YYYY-MM-DD`); ein ungültiger Eintrag macht
        den ganzen Blob ungültig (ValueError).
    """

    raw = json.loads(blob)
    if not isinstance(raw, dict):
        raise ValueError("completions-Blob muss ein Objekt sein")
    out: dict[str, set[str]] = {}
    for habit_id, days in raw.items():
        if not isinstance(days, list):
            raise ValueError(f"Tage für {habit_id} müssen eine Liste sein")
        keys = {str(d) for d in days}
        for d in keys:
            if parse_day_key(d).isoformat() != d:
                raise ValueError(f"Ungültiger Tages-Schlüssel: {d!r}")
        out[str(UUID(str(habit_id)))] = keys
    return out


class HabitRepository:
    """
    Repository für die Habit-Liste (Blob "habits").

    Hinweise:
        Ein nicht lesbarer Blob wird wie "noch keine Daten" behandelt und protokolliert.
    """

    def __init__(self, store: BlobStoreProtocol) -> None:
        self.store = store

    def load_all(self) -> list[Habit]:
        """
        Lädt alle Habits in Einfügereihenfolge.

        Ausnahmen:
            PersistenceError: Wenn der Speicher selbst nicht lesbar ist.
        """

        blob = _load_blob(self.store, HABITS_KEY)
        if blob is None:
            return []
        try:
            return decode_habits(blob)
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("habits-Blob nicht lesbar, starte leer: %s", exc)
            return []

    def save_all(self, habits: Iterable[Habit]) -> None:
        _save_blob(self.store, HABITS_KEY, encode_habits(habits))


class CompletionRepository:
    """Repository für erledigte Tage je Habit (Blob "completions")."""

    def __init__(self, store: BlobStoreProtocol) -> None:
        self.store = store

    def load_all(self) -> dict[str, set[str]]:
        blob = _load_blob(self.store, COMPLETIONS_KEY)
        if blob is None:
            return {}
        try:
            return decode_completions(blob)
        except (ValueError, TypeError) as exc:
            logger.warning("completions-Blob nicht lesbar, starte leer: %s", exc)
            return {}

    def save_all(self, completions: Mapping[str, Iterable[str]]) -> None:
        _save_blob(self.store, COMPLETIONS_KEY, encode_completions(completions))
