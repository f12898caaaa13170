from __future__ import annotations

# -----------------------------------------------------------------------------
# Service-Schicht (Anwendungsfälle + Serien-/Kalenderberechnung)
# -----------------------------------------------------------------------------
# Diese Schicht kapselt die fachliche Logik und stellt eine stabile API für die UI bereit.
#
# Architektur-Regel:
# - UI spricht nur mit `HabitTrackingEngine`.
# - Die Engine hält Habits + erledigte Tage im Speicher (Quelle der Wahrheit für Reads)
#   und schreibt nach jeder Änderung den vollständigen Blob über die Repositories.
# - Repositories kennen nur `BlobStoreProtocol`.
#
# `HabitTrackingEngine.bootstrap()` fungiert als „Composition Root“: dort werden
# DB-Verbindung/Schema initialisiert und Repositories instanziiert.
# -----------------------------------------------------------------------------


"""Service-Schicht des Habit-Trackers.

Zweck:
    Verwaltet die Habit-Liste und die erledigten Tage je Habit und berechnet daraus
    Serien (Streaks), Monatsübersichten, Jahreskennzahlen und Kalenderdaten.

Hinweise:
    Operationen mit unbekannter Habit-ID sind stille No-ops (keine Exceptions), da die UI
    auch mit veralteten Referenzen arbeiten darf. Speicherfehler werden protokolliert;
    der In-Memory-Zustand bleibt gültig.
"""

import calendar
import dataclasses
import logging
import os
import threading
from datetime import date, timedelta
from typing import Optional, Union
from uuid import UUID, uuid4

from habit_tracker.db import PersistenceError, SystemClock, connect, create_schema
from habit_tracker.db_protocol import BlobStoreProtocol, ClockProtocol, DatabaseProtocol
from habit_tracker.models import (
    DEFAULT_HABITS,
    CalendarDay,
    DateLike,
    DayProgress,
    Habit,
    MonthSummary,
    SessionContext,
    YearlyStats,
    day_key,
    parse_day_key,
)
from habit_tracker.repositories import CompletionRepository, HabitRepository, KeyValueStore

logger = logging.getLogger(__name__)

HabitRef = Union[UUID, str]

# Obergrenze für den Rückwärtslauf der aktuellen Serie (Anzeige-Deckel, None = unbegrenzt)
DEFAULT_STREAK_LIMIT = 365

CALENDAR_CELLS = 42

_MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def _month_label(month_start: date) -> str:
    return f"{_MONTH_ABBR[month_start.month - 1]} {month_start.year}"


def _next_month(month_start: date) -> date:
    if month_start.month == 12:
        return date(month_start.year + 1, 1, 1)
    return date(month_start.year, month_start.month + 1, 1)


class HabitTrackingEngine:
    """
    Fassade für alle Anwendungsfälle des Habit-Trackers.

    Zweck:
        Besitzt die geordnete Habit-Liste, die erledigten Tage je Habit und den
        Sitzungszustand (`SessionContext`). Die GUI kennt nur diese Klasse.

    Hinweise:
        - `bootstrap()` erzeugt DB + Repositories (Composition Root).
        - Jede Änderung (add/delete/toggle/update) schreibt sofort den betroffenen Blob.
        - Liste, Tage und Sitzung sind durch ein gemeinsames Lock geschützt, damit
          `delete_habit` atomar gegenüber `toggle_completion` bleibt.
    """

    def __init__(
        self,
        habit_repo: HabitRepository,
        completion_repo: CompletionRepository,
        *,
        clock: Optional[ClockProtocol] = None,
        streak_limit: Optional[int] = DEFAULT_STREAK_LIMIT,
        clamp_percentage: bool = True,
        strict_persistence: bool = False,
        db: Optional[DatabaseProtocol] = None,
        owns_db: bool = False,
    ) -> None:
        """
        Initialisiert die Engine und lädt den gespeicherten Zustand.

        Parameter:
            habit_repo (HabitRepository): Zugriff auf den Blob "habits".
            completion_repo (CompletionRepository): Zugriff auf den Blob "completions".
            clock (ClockProtocol | None): Zeitquelle; Standard ist die Systemuhr.
            streak_limit (int | None): Maximale Länge der aktuellen Serie (None = unbegrenzt).
            clamp_percentage (bool): Jahresquote auf 100 % begrenzen.
            strict_persistence (bool): Speicherfehler zusätzlich als `PersistenceError` werfen.
            db (DatabaseProtocol | None): Datenbank, die bei `close()` geschlossen werden kann.
            owns_db (bool): Wenn True, wird `db` bei `close()` geschlossen.

        Ausnahmen:
            ValueError: Wenn `streak_limit` kleiner als 1 ist.
        """

        if streak_limit is not None and int(streak_limit) < 1:
            raise ValueError("streak_limit muss >= 1 sein (falls gesetzt)")

        self.habit_repo = habit_repo
        self.completion_repo = completion_repo
        self.clock: ClockProtocol = clock or SystemClock()

        self._streak_limit = int(streak_limit) if streak_limit is not None else None
        self._clamp_percentage = clamp_percentage
        self._strict_persistence = strict_persistence
        self._db = db
        self._owns_db = owns_db

        self._lock = threading.RLock()
        self._habits: list[Habit] = []
        self._completions: dict[str, set[str]] = {}
        self.session = SessionContext(session_start=self.clock.now())
        self.last_persistence_error: Optional[PersistenceError] = None

        self._load()

    # -----------------------------
    # Factory helpers
    # -----------------------------
    @classmethod
    def from_store(cls, store: BlobStoreProtocol, **options) -> "HabitTrackingEngine":
        """Erzeugt eine Engine für einen beliebigen Blob-Speicher (z. B. in Tests)."""

        return cls(HabitRepository(store), CompletionRepository(store), **options)

    @classmethod
    def from_db(cls, db: DatabaseProtocol, *, owns_db: bool = False, **options) -> "HabitTrackingEngine":
        """
        Erzeugt eine Engine für ein bereits geöffnetes DB-Objekt.

        Parameter:
            db (DatabaseProtocol): Geöffnete Datenbank mit Tabelle `kv_store`.
            owns_db (bool): Ob die Engine die DB später selbst schließen soll.
            **options: Weitere Schlüsselwort-Argumente für den Konstruktor.
        """

        store = KeyValueStore(db)
        return cls(
            HabitRepository(store),
            CompletionRepository(store),
            db=db,
            owns_db=owns_db,
            **options,
        )

    @classmethod
    def bootstrap(
        cls,
        *,
        db_path: Optional[str | os.PathLike[str]] = None,
        reset_db: bool = False,
        **options,
    ) -> "HabitTrackingEngine":
        """
        Bootstrapt die Anwendung (DB öffnen + Schema anlegen + Zustand laden).

        Parameter:
            db_path (str | PathLike | None): Pfad zur SQLite-Datei; ":memory:" für Tests.
            reset_db (bool): Wenn True, werden alle gespeicherten Daten verworfen.
            **options: clock, streak_limit, clamp_percentage, strict_persistence.

        Rückgabe:
            HabitTrackingEngine: Einsatzbereite Engine, die die DB besitzt.
        """

        db = connect(db_path)
        create_schema(db, reset_db=reset_db)
        return cls.from_db(db, owns_db=True, **options)

    def close(self) -> None:
        """Beendet die Sitzung und schließt die DB-Verbindung (nur wenn die Engine sie besitzt)."""

        with self._lock:
            self.session.clear()
        if self._owns_db and self._db is not None:
            self._db.close()

    # -----------------------------
    # Internals
    # -----------------------------
    def _load(self) -> None:
        try:
            habits = self.habit_repo.load_all()
            completions = self.completion_repo.load_all()
        except PersistenceError as exc:
            self.last_persistence_error = exc
            logger.error("Gespeicherte Daten nicht lesbar, starte mit leerem Zustand: %s", exc)
            if self._strict_persistence:
                raise
            habits, completions = [], {}

        known = {str(h.id) for h in habits}
        orphans = [k for k in completions if k not in known]
        if orphans:
            # Integrität wird hier hergestellt, nicht vom Speicher
            logger.warning("%d verwaiste Completion-Einträge verworfen", len(orphans))

        self._habits = list(habits)
        self._completions = {k: set(v) for k, v in completions.items() if k in known and v}
        logger.info("%d Habits geladen", len(self._habits))

    @staticmethod
    def _key(habit_id: HabitRef) -> Optional[str]:
        if isinstance(habit_id, UUID):
            return str(habit_id)
        try:
            return str(UUID(str(habit_id)))
        except ValueError:
            return None

    def _find(self, key: Optional[str]) -> Optional[Habit]:
        if key is None:
            return None
        for h in self._habits:
            if str(h.id) == key:
                return h
        return None

    def _days(self, habit_id: HabitRef) -> set[str]:
        key = self._key(habit_id)
        if key is None:
            return set()
        return self._completions.get(key, set())

    def _report(self, exc: PersistenceError, what: str) -> None:
        self.last_persistence_error = exc
        logger.error("%s konnte nicht gespeichert werden: %s", what, exc)
        if self._strict_persistence:
            raise exc

    def _persist_habits(self) -> None:
        try:
            self.habit_repo.save_all(self._habits)
        except PersistenceError as exc:
            self._report(exc, "Habit-Liste")

    def _persist_completions(self) -> None:
        try:
            self.completion_repo.save_all(self._completions)
        except PersistenceError as exc:
            self._report(exc, "Erledigte Tage")

    # -----------------------------
    # Habit registry
    # -----------------------------
    @property
    def habits(self) -> list[Habit]:
        """Alle Habits in Einfügereihenfolge (Kopie)."""

        with self._lock:
            return list(self._habits)

    def get_habit(self, habit_id: HabitRef) -> Optional[Habit]:
        with self._lock:
            return self._find(self._key(habit_id))

    def add_habit(self, title: str, emoji: str, color_tag: str) -> Habit:
        """
        Legt ein neues Habit an und speichert die Habit-Liste.

        Parameter:
            title (str): Anzeigename (wird getrimmt).
            emoji (str): Symbol.
            color_tag (str): Farbe als Hex-String.

        Rückgabe:
            Habit: Das neue Habit mit frischer UUID und Anlagezeitpunkt "jetzt".

        Ausnahmen:
            ValueError: Wenn Titel, Emoji oder Farbe leer sind.
        """

        habit = Habit(
            id=uuid4(),
            title=title,
            emoji=emoji,
            color_tag=color_tag,
            created_date=self.clock.now(),
        )
        with self._lock:
            self._habits.append(habit)
            self._persist_habits()
        logger.debug("Habit angelegt: %s (%s)", habit.title, habit.id)
        return habit

    def update_habit(
        self,
        habit_id: HabitRef,
        *,
        title: Optional[str] = None,
        emoji: Optional[str] = None,
        color_tag: Optional[str] = None,
    ) -> Optional[Habit]:
        """
        Ändert Titel/Emoji/Farbe eines Habits.

        Rückgabe:
            Habit | None: Geändertes Habit oder `None`, wenn die ID unbekannt ist.

        Ausnahmen:
            ValueError: Wenn ein neuer Wert leer ist.
        """

        with self._lock:
            current = self._find(self._key(habit_id))
            if current is None:
                return None
            changes = {
                name: value
                for name, value in (("title", title), ("emoji", emoji), ("color_tag", color_tag))
                if value is not None
            }
            if not changes:
                return current
            updated = dataclasses.replace(current, **changes)
            self._habits[self._habits.index(current)] = updated
            self._persist_habits()
        return updated

    def delete_habit(self, habit_id: HabitRef) -> bool:
        """
        Löscht ein Habit inklusive aller erledigten Tage.

        Zweck:
            Entfernt Habit und Completion-Eintrag gemeinsam (kaskadierend), hebt eine
            Auswahl auf und speichert beide Blobs.

        Rückgabe:
            bool: True, wenn ein Habit gelöscht wurde; False bei unbekannter ID (No-op).
        """

        key = self._key(habit_id)
        with self._lock:
            habit = self._find(key)
            if habit is None:
                return False
            self._habits.remove(habit)
            self._completions.pop(key, None)
            if self.session.selected_habit_id == habit.id:
                self.session.selected_habit_id = None
            self._persist_habits()
            self._persist_completions()
        logger.debug("Habit gelöscht: %s (%s)", habit.title, habit.id)
        return True

    def ensure_default_habits(self) -> list[Habit]:
        """
        Legt Standard-Habits an, falls noch keine existieren.

        Rückgabe:
            list[Habit]: Neu angelegte Habits (leer, wenn bereits Habits vorhanden waren).
        """

        with self._lock:
            if self._habits:
                return []
            now = self.clock.now()
            created = [
                Habit(id=uuid4(), title=title, emoji=emoji, color_tag=color, created_date=now)
                for title, emoji, color in DEFAULT_HABITS
            ]
            self._habits.extend(created)
            self._persist_habits()
        return created

    # -----------------------------
    # Selection (SessionContext)
    # -----------------------------
    def select_habit(self, habit_id: Optional[HabitRef]) -> bool:
        """
        Setzt das ausgewählte Habit (None hebt die Auswahl auf).

        Rückgabe:
            bool: False, wenn die ID unbekannt ist (Auswahl bleibt dann unverändert).
        """

        with self._lock:
            if habit_id is None:
                self.session.selected_habit_id = None
                return True
            habit = self._find(self._key(habit_id))
            if habit is None:
                return False
            self.session.selected_habit_id = habit.id
            self.session.navigate(f"detail:{habit.id}")
            return True

    @property
    def selected_habit(self) -> Optional[Habit]:
        with self._lock:
            if self.session.selected_habit_id is None:
                return None
            return self._find(str(self.session.selected_habit_id))

    # -----------------------------
    # Completions
    # -----------------------------
    def toggle_completion(self, habit_id: HabitRef, when: Optional[DateLike] = None) -> bool:
        """
        Markiert einen Tag als erledigt bzw. nimmt die Markierung zurück.

        Zweck:
            Reines Umschalten: zweimal derselbe Tag hebt sich auf. Nach jedem Umschalten
            wird der Blob "completions" gespeichert.

        Parameter:
            habit_id (UUID | str): Habit-Referenz.
            when (date | datetime | None): Zeitpunkt; Standard ist heute (lokal).

        Rückgabe:
            bool: Neuer Zustand (True = erledigt). False ohne Wirkung bei unbekannter ID.
        """

        key = self._key(habit_id)
        with self._lock:
            if self._find(key) is None:
                logger.debug("Toggle für unbekanntes Habit ignoriert: %s", habit_id)
                return False
            day = day_key(when if when is not None else self.clock.today())
            days = self._completions.setdefault(key, set())
            if day in days:
                days.discard(day)
                if not days:
                    del self._completions[key]
                done = False
            else:
                days.add(day)
                self.session.completions_this_session += 1
                done = True
            self._persist_completions()
        return done

    def is_completed(self, habit_id: HabitRef, when: DateLike) -> bool:
        with self._lock:
            return day_key(when) in self._days(habit_id)

    def is_completed_today(self, habit_id: HabitRef) -> bool:
        return self.is_completed(habit_id, self.clock.today())

    def total_completions(self, habit_id: HabitRef) -> int:
        with self._lock:
            return len(self._days(habit_id))

    def completion_dates(self, habit_id: HabitRef) -> list[str]:
        """Erledigte Tage als sortierte Tages-Schlüssel (älteste zuerst)."""

        with self._lock:
            return sorted(self._days(habit_id))

    def completion_sets(self) -> dict[str, set[str]]:
        """Kopie aller erledigten Tage (habit-id → Tages-Schlüssel)."""

        with self._lock:
            return {k: set(v) for k, v in self._completions.items()}

    # -----------------------------
    # Streaks
    # -----------------------------
    def current_streak(self, habit_id: HabitRef) -> int:
        """
        Aktuelle Serie in Tagen.

        Ablauf:
            Start bei heute; ist heute noch offen, wird bei gestern begonnen. Von dort
            wird Tag für Tag rückwärts gezählt, bis der erste nicht erledigte Tag erreicht
            ist. Der Lauf endet spätestens nach `streak_limit` Tagen.

        Rückgabe:
            int: Länge der Serie (0 ohne erledigte Tage oder bei Lücke vor gestern).
        """

        with self._lock:
            days = self._days(habit_id)
            if not days:
                return 0
            cursor = self.clock.today()
            if day_key(cursor) not in days:
                cursor -= timedelta(days=1)
            streak = 0
            while day_key(cursor) in days:
                streak += 1
                if self._streak_limit is not None and streak >= self._streak_limit:
                    break
                cursor -= timedelta(days=1)
            return streak

    def longest_streak(self, habit_id: HabitRef) -> int:
        """Längste Folge aufeinanderfolgender erledigter Tage (ohne Deckel)."""

        with self._lock:
            dates = sorted(parse_day_key(d) for d in self._days(habit_id))
        if not dates:
            return 0
        best = run = 1
        for prev, cur in zip(dates, dates[1:]):
            if cur - prev == timedelta(days=1):
                run += 1
                best = max(best, run)
            else:
                run = 1
        return best

    # -----------------------------
    # Aggregation (Monat/Jahr/Kalender)
    # -----------------------------
    def monthly_breakdown(self, habit_id: HabitRef) -> list[MonthSummary]:
        """
        Monatsübersicht vom Anlagemonat bis zum aktuellen Monat (älteste zuerst).

        Zweck:
            Liefert je Monat die Anzahl erledigter Tage und die tatsächliche Monatslänge
            (Schaltjahre berücksichtigt). Die UI dreht die Reihenfolge bei Bedarf selbst um.

        Rückgabe:
            list[MonthSummary]: Leer bei unbekanntem Habit oder Anlagedatum in der Zukunft.
        """

        with self._lock:
            habit = self._find(self._key(habit_id))
            if habit is None:
                return []
            days = set(self._completions.get(str(habit.id), set()))

        month = habit.created_day.replace(day=1)
        last = self.clock.today().replace(day=1)
        out: list[MonthSummary] = []
        while month <= last:
            prefix = f"{month.year:04d}-{month.month:02d}-"
            out.append(
                MonthSummary(
                    label=_month_label(month),
                    month_start=month,
                    completed_count=sum(1 for d in days if d.startswith(prefix)),
                    days_in_month=calendar.monthrange(month.year, month.month)[1],
                )
            )
            month = _next_month(month)
        return out

    def yearly_stats(self, habit_id: HabitRef) -> YearlyStats:
        """
        Jahreskennzahlen für das laufende Kalenderjahr.

        Hinweise:
            `total_days` zählt vom 1. Januar bis heute inklusive (mindestens 1).
            Die Quote wird standardmäßig auf 100 % begrenzt (`clamp_percentage`).
        """

        today = self.clock.today()
        prefix = f"{today.year:04d}-"
        with self._lock:
            completed = sum(1 for d in self._days(habit_id) if d.startswith(prefix))
        total = max(1, (today - date(today.year, 1, 1)).days + 1)
        percentage = completed / total * 100.0
        if self._clamp_percentage:
            percentage = min(percentage, 100.0)
        return YearlyStats(completed_days=completed, total_days=total, percentage=percentage)

    def calendar_month(self, habit_id: HabitRef, year: int, month: int) -> list[Optional[CalendarDay]]:
        """
        Kalenderraster eines Monats (Woche beginnt am Sonntag).

        Rückgabe:
            list[CalendarDay | None]: Immer 42 Zellen (6 Wochen); `None` füllt die Zellen
            vor dem 1. und nach dem letzten Tag des Monats auf.

        Ausnahmen:
            ValueError: Bei ungültigem Monat/Jahr.
        """

        first = date(year, month, 1)
        today = self.clock.today()
        with self._lock:
            days = set(self._days(habit_id))

        cells: list[Optional[CalendarDay]] = [None] * ((first.weekday() + 1) % 7)
        for offset in range(calendar.monthrange(year, month)[1]):
            d = first + timedelta(days=offset)
            cells.append(CalendarDay(day=d, completed=day_key(d) in days, is_today=d == today))
        cells.extend([None] * (CALENDAR_CELLS - len(cells)))
        return cells

    def weekly_progress(self, days: int = 7) -> list[DayProgress]:
        """
        Tagesfortschritt aller Habits für die letzten `days` Tage (älteste zuerst).

        Hinweise:
            Ein Habit zählt an einem Tag nur mit, wenn es an diesem Tag bereits existierte.
        """

        if days < 1:
            raise ValueError("days muss >= 1 sein")
        today = self.clock.today()
        out: list[DayProgress] = []
        with self._lock:
            for offset in range(days - 1, -1, -1):
                d = today - timedelta(days=offset)
                key = day_key(d)
                existing = [h for h in self._habits if h.created_day <= d]
                done = sum(1 for h in existing if key in self._completions.get(str(h.id), ()))
                out.append(DayProgress(day=d, completed_habits=done, total_habits=len(existing)))
        return out

    def today_completion_rate(self) -> float:
        """Anteil (0.0–1.0) der heute erledigten Habits an allen Habits."""

        key = day_key(self.clock.today())
        with self._lock:
            if not self._habits:
                return 0.0
            done = sum(1 for h in self._habits if key in self._completions.get(str(h.id), ()))
            return done / len(self._habits)
