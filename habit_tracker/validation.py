"""
Validierung und Parsing von Benutzereingaben.

Zweck:
    Die GUI nimmt Eingaben als Strings entgegen. Dieses Modul wandelt diese Strings in
    passende Werte um (Titel, Emoji, Farbe, Datum) und prüft einfache Regeln, bevor die
    Engine aufgerufen wird.

Hinweise:
    Die Validierung ist bewusst leichtgewichtig gehalten (Prototyp). Invarianten der
    Entities werden zusätzlich in `models.py` über `__post_init__` abgesichert.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional

from habit_tracker.models import HABIT_COLORS, HABIT_EMOJIS

_HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")

MAX_TITLE_LENGTH = 60


class ValidationError(ValueError):
    """
    Fehlerklasse für ungültige Benutzereingaben.

    Zweck:
        Wird in der UI abgefangen, um eine verständliche Fehlermeldung anzuzeigen,
        ohne einen technischen Traceback zu präsentieren.
    """


def parse_title(text: str) -> str:
    """
    Prüft den Habit-Namen.

    Rückgabe:
        str: Getrimmter Titel.

    Ausnahmen:
        ValidationError: Wenn der Titel leer oder länger als `MAX_TITLE_LENGTH` ist.
    """

    t = (text or "").strip()
    if not t:
        raise ValidationError("Bitte einen Namen für das Habit eingeben")
    if len(t) > MAX_TITLE_LENGTH:
        raise ValidationError(f"Name darf höchstens {MAX_TITLE_LENGTH} Zeichen lang sein")
    return t


def parse_emoji(text: str, *, default: str = HABIT_EMOJIS[0]) -> str:
    """Leere Eingabe → `default`, sonst das getrimmte Symbol."""

    t = (text or "").strip()
    return t or default


def parse_color(text: str) -> str:
    """
    Parst eine Farbe als Hex-String `#RRGGBB`.

    Zweck:
        Akzeptiert zusätzlich einen Index in die Palette (`HABIT_COLORS`), z. B. "0".

    Ausnahmen:
        ValidationError: Bei unbekanntem Format oder Index außerhalb der Palette.
    """

    t = (text or "").strip()
    if not t:
        return HABIT_COLORS[0]
    if t.isdigit():
        idx = int(t)
        if idx >= len(HABIT_COLORS):
            raise ValidationError(f"Farbindex muss zwischen 0 und {len(HABIT_COLORS) - 1} liegen")
        return HABIT_COLORS[idx]
    if not _HEX_COLOR.match(t):
        raise ValidationError("Farbe muss im Format #RRGGBB angegeben werden")
    return t.upper()


def parse_date(text: str) -> Optional[date]:
    """
    Parst ein Datum aus typischen Eingabeformaten.

    Rückgabe:
        date | None: Geparstes Datum oder `None` bei leerer Eingabe.

    Ausnahmen:
        ValidationError: Wenn kein unterstütztes Format erkannt wird.

    Hinweise:
        Unterstützte Formate:
        - YYYY-MM-DD (ISO)
        - DD.MM.YY
        - DD.MM.YYYY
    """

    t = (text or "").strip()
    if not t:
        return None
    for fmt in ("%Y-%m-%d", "%d.%m.%y", "%d.%m.%Y"):
        try:
            return datetime.strptime(t, fmt).date()
        except ValueError:
            continue
    raise ValidationError("Datum muss YYYY-MM-DD oder DD.MM.YY(YY) sein")
