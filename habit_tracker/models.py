from __future__ import annotations

# -----------------------------------------------------------------------------
# Domain model (Entities)
# -----------------------------------------------------------------------------
# Diese Datei enthält die fachlichen Kernobjekte des Habit-Trackers.
#
# Ziel: schlanke, gut testbare Datenklassen (dataclasses).
# - Invarianten werden über __post_init__ als Basisschutz geprüft.
# - UI-spezifisches Parsing (String → date/Farbe) passiert in `validation.py`.
# - Persistenzdetails (JSON-Blobs, SQL) bleiben in den Repositories.
#
# Erledigte Tage werden als kanonischer Tages-Schlüssel `YYYY-MM-DD` geführt
# (lokale Zeitzone). Damit gibt es keine Mehrdeutigkeit durch die Uhrzeit.
# -----------------------------------------------------------------------------


from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Union
from uuid import UUID

DateLike = Union[date, datetime]

# Farbpalette und Emoji-Auswahl des "Habit anlegen"-Dialogs
HABIT_COLORS: tuple[str, ...] = (
    "#4F86F7",
    "#34C759",
    "#FF9500",
    "#FF3B30",
    "#AF52DE",
    "#5AC8FA",
    "#FFCC00",
    "#8E8E93",
)

HABIT_EMOJIS: tuple[str, ...] = (
    "🏃", "📖", "🧘", "💪", "🧠", "💤", "💧", "🥗",
    "✍️", "🎵", "🧹", "💊", "🚶", "🎯", "📱", "🏋️",
)

# Startbelegung, wenn noch keine Habits existieren: (Titel, Emoji, Farbe)
DEFAULT_HABITS: tuple[tuple[str, str, str], ...] = (
    ("Meditate", "🧘", HABIT_COLORS[4]),
    ("Workout", "💪", HABIT_COLORS[2]),
    ("Read", "📖", HABIT_COLORS[0]),
)


def _require_non_empty(val: str, field: str) -> None:
    """
    Prüft, ob ein Pflicht-String nicht leer ist.

    Parameter:
        val (str): Zu prüfender Wert.
        field (str): Feldname für die Fehlermeldung.

    Ausnahmen:
        ValueError: Wenn `val` leer/whitespace ist.
    """

    if not isinstance(val, str) or not val.strip():
        raise ValueError(f"{field} darf nicht leer sein")


def day_key(value: DateLike) -> str:
    """
    Wandelt ein Datum in den kanonischen Tages-Schlüssel `YYYY-MM-DD` um.

    Zweck:
        Einheitlicher Set-Schlüssel für erledigte Tage. Zeitzonenbehaftete
        `datetime`-Werte werden vorher in die lokale Zeitzone umgerechnet,
        naive Werte gelten bereits als lokale Zeit.

    Parameter:
        value (date | datetime): Beliebiger Zeitpunkt oder Kalendertag.

    Rückgabe:
        str: Tages-Schlüssel, z. B. "2025-02-28".
    """

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        value = value.date()
    return value.isoformat()


def parse_day_key(text: str) -> date:
    """Gegenstück zu `day_key`: "YYYY-MM-DD" → date (ValueError bei ungültigem Format)."""

    return date.fromisoformat(text)


@dataclass(slots=True)
class Habit:
    """
    Eine Gewohnheit, die täglich abgehakt werden kann.

    Zweck:
        Stammdaten eines Habits. Die erledigten Tage werden nicht hier, sondern
        getrennt im Completion-Set der Engine geführt (eigener Persistenz-Blob).

    Attribute:
        id (UUID): Identität des Habits (unveränderlich).
        title (str): Anzeigename (Pflicht, wird getrimmt gespeichert).
        emoji (str): Symbol für Liste/Detailansicht.
        color_tag (str): Farbe als Hex-String, z. B. "#4F86F7".
        created_date (datetime): Anlagezeitpunkt; Beginn der Monatsübersicht.

    Hinweise:
        Nur `title`, `emoji` und `color_tag` dürfen nachträglich geändert werden.
    """

    id: UUID
    title: str
    emoji: str
    color_tag: str
    created_date: datetime

    def __post_init__(self) -> None:
        _require_non_empty(self.title, "title")
        _require_non_empty(self.emoji, "emoji")
        _require_non_empty(self.color_tag, "color_tag")
        self.title = self.title.strip()

    @property
    def created_day(self) -> date:
        """Kalendertag der Anlage (lokal)."""

        return parse_day_key(day_key(self.created_date))


@dataclass(slots=True)
class SessionContext:
    """
    Sitzungszustand, der an die UI weitergereicht wird.

    Zweck:
        Ersetzt einen globalen Session-Cache durch ein explizites, typisiertes
        Objekt pro Engine. Die UI liest daraus z. B. das ausgewählte Habit.

    Attribute:
        selected_habit_id (UUID | None): Aktuell ausgewähltes Habit.
        session_start (datetime | None): Beginn der Sitzung.
        completions_this_session (int): Anzahl „erledigt“-Markierungen seit Start.
        view_history (list[str]): Zuletzt geöffnete Ansichten (nur Anzeige).
    """

    selected_habit_id: Optional[UUID] = None
    session_start: Optional[datetime] = None
    completions_this_session: int = 0
    view_history: list[str] = field(default_factory=list)

    def navigate(self, view_name: str) -> None:
        self.view_history.append(view_name)

    def clear(self) -> None:
        self.selected_habit_id = None
        self.completions_this_session = 0
        self.view_history.clear()


@dataclass(slots=True, frozen=True)
class MonthSummary:
    """
    Ein Eintrag der Monatsübersicht eines Habits.

    Attribute:
        label (str): Anzeigetext, z. B. "Feb 2025".
        month_start (date): Erster Tag des Monats.
        completed_count (int): Anzahl erledigter Tage im Monat.
        days_in_month (int): Tatsächliche Monatslänge (28–31).
    """

    label: str
    month_start: date
    completed_count: int
    days_in_month: int

    @property
    def completion_rate(self) -> float:
        return self.completed_count / self.days_in_month if self.days_in_month else 0.0


@dataclass(slots=True, frozen=True)
class YearlyStats:
    """
    Jahreskennzahlen eines Habits für das laufende Kalenderjahr.

    Attribute:
        completed_days (int): Erledigte Tage im laufenden Jahr.
        total_days (int): Tage vom 1. Januar bis heute (inklusive, mindestens 1).
        percentage (float): completed_days / total_days * 100.
    """

    completed_days: int
    total_days: int
    percentage: float


@dataclass(slots=True, frozen=True)
class CalendarDay:
    """Eine belegte Zelle im Monatskalender."""

    day: date
    completed: bool
    is_today: bool


@dataclass(slots=True, frozen=True)
class DayProgress:
    """
    Tagesfortschritt über alle Habits (Wochendiagramm).

    Attribute:
        day (date): Kalendertag.
        completed_habits (int): Anzahl an diesem Tag erledigter Habits.
        total_habits (int): Anzahl Habits, die an diesem Tag bereits existierten.
    """

    day: date
    completed_habits: int
    total_habits: int

    @property
    def percentage(self) -> float:
        if self.total_habits <= 0:
            return 0.0
        return self.completed_habits / self.total_habits * 100.0
