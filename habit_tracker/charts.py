from __future__ import annotations

# -----------------------------------------------------------------------------
# Diagramme (Matplotlib)
# -----------------------------------------------------------------------------
# Zeichenfunktionen für die Detailansicht. Sie arbeiten auf einer beliebigen
# `matplotlib.axes.Axes`; Figure/Canvas besitzt die UI. Dadurch lassen sich die
# Diagramme auch ohne Tk (z. B. in Tests) erzeugen.
# -----------------------------------------------------------------------------


import math
from typing import Optional, Sequence

from matplotlib.axes import Axes
from matplotlib.patches import Circle

from habit_tracker.models import CalendarDay, DayProgress, MonthSummary

WEEKDAY_LABELS = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


def clear_ax_with_message(ax: Axes, msg: str) -> None:
    """
    Leert eine Achse und zeigt eine Statusmeldung.

    Zweck:
        Wird genutzt, um „keine Daten“ lesbar im Plotbereich darzustellen.
    """

    ax.clear()
    ax.text(0.5, 0.5, msg, ha="center", va="center", transform=ax.transAxes)
    ax.set_xticks([])
    ax.set_yticks([])


def draw_monthly_breakdown(ax: Axes, months: Sequence[MonthSummary], color: str) -> None:
    """
    Horizontale Balken je Monat, neuester Monat oben.

    Parameter:
        ax (Axes): Zielachse.
        months (Sequence[MonthSummary]): Monatsübersicht (älteste zuerst, wie von der Engine).
        color (str): Habit-Farbe.
    """

    ax.clear()
    if not months:
        clear_ax_with_message(ax, "Noch keine Monate vorhanden")
        return

    rows = list(reversed(months))
    ys = list(range(len(rows)))
    counts = [m.completed_count for m in rows]
    ax.barh(ys, [m.days_in_month for m in rows], color=color, alpha=0.12)
    ax.barh(ys, counts, color=color)
    for y, m in zip(ys, rows):
        ax.text(m.days_in_month + 0.5, y, f"{m.completed_count}/{m.days_in_month}", va="center", fontsize=8)
    ax.set_yticks(ys)
    ax.set_yticklabels([m.label for m in rows])
    ax.invert_yaxis()
    ax.set_xlim(0, 34)
    ax.set_xlabel("Tage")
    ax.set_title("Monatsübersicht")


def draw_weekly_progress(ax: Axes, progress: Sequence[DayProgress], color: str = "#4F86F7") -> None:
    """Säulen mit dem Tagesfortschritt in Prozent (letzte Tage, älteste links)."""

    ax.clear()
    if not progress:
        clear_ax_with_message(ax, "Keine Daten")
        return

    xs = list(range(len(progress)))
    ax.bar(xs, [p.percentage for p in progress], color=color)
    ax.set_xticks(xs)
    ax.set_xticklabels([WEEKDAY_LABELS[(p.day.weekday() + 1) % 7] for p in progress])
    ax.set_ylim(0, 100)
    ax.set_ylabel("% erledigt")
    ax.set_title("Letzte 7 Tage")


def draw_calendar_month(
    ax: Axes,
    cells: Sequence[Optional[CalendarDay]],
    color: str,
    title: str = "",
) -> None:
    """
    Zeichnet ein Monatsraster (7 Spalten, Sonntag zuerst).

    Zweck:
        Erledigte Tage erhalten einen gefüllten Kreis, der heutige Tag wird fett beschriftet.

    Parameter:
        ax (Axes): Zielachse.
        cells (Sequence[CalendarDay | None]): Raster aus `HabitTrackingEngine.calendar_month`.
        color (str): Habit-Farbe.
        title (str): Überschrift, z. B. "October 2026".
    """

    ax.clear()
    rows = (len(cells) + 6) // 7
    for col, label in enumerate(WEEKDAY_LABELS):
        ax.text(col, -1, label, ha="center", va="center", fontsize=8)

    for idx, cell in enumerate(cells):
        if cell is None:
            continue
        col, row = idx % 7, idx // 7
        if cell.completed:
            ax.add_patch(Circle((col, row), 0.4, color=color))
        ax.text(
            col,
            row,
            str(cell.day.day),
            ha="center",
            va="center",
            fontsize=9,
            fontweight="bold" if cell.is_today else "normal",
            color="white" if cell.completed else "black",
        )

    ax.set_xlim(-0.5, 6.5)
    ax.set_ylim(rows - 0.5, -1.5)
    ax.set_aspect("equal")
    ax.set_xticks([])
    ax.set_yticks([])
    for spine in ax.spines.values():
        spine.set_visible(False)
    if title:
        ax.set_title(title)


def calendar_cell_at(
    cells: Sequence[Optional[CalendarDay]],
    x: Optional[float],
    y: Optional[float],
) -> Optional[CalendarDay]:
    """
    Ermittelt die Kalenderzelle unter einer Position in Datenkoordinaten.

    Zweck:
        Übersetzt einen Mausklick auf das von `draw_calendar_month` gezeichnete Raster
        (Spalte = x, Zeile = y, Zellmitte auf ganzen Zahlen) zurück in einen Tag.

    Rückgabe:
        CalendarDay | None: Getroffene Zelle; `None` außerhalb des Rasters, auf der
        Wochentagszeile oder auf einer leeren Zelle.
    """

    if x is None or y is None:
        return None
    col = math.floor(x + 0.5)
    row = math.floor(y + 0.5)
    if not 0 <= col < 7 or row < 0:
        return None
    idx = row * 7 + col
    if idx >= len(cells):
        return None
    return cells[idx]
