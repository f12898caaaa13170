"""Diagramme werden ohne GUI auf einer reinen matplotlib-Figure gezeichnet."""

from datetime import date

import pytest
from matplotlib.figure import Figure
from matplotlib.patches import Circle

from habit_tracker.charts import (
    WEEKDAY_LABELS,
    calendar_cell_at,
    clear_ax_with_message,
    draw_calendar_month,
    draw_monthly_breakdown,
    draw_weekly_progress,
)
from tests.conftest import TODAY


@pytest.fixture
def ax():
    return Figure().add_subplot(111)


@pytest.mark.unit
class TestCharts:
    def test_monthly_breakdown_newest_on_top(self, ax, engine, clock):
        clock.set(date(2025, 1, 10))
        h = engine.add_habit("Read", "📖", "#4F86F7")
        engine.toggle_completion(h.id, date(2025, 1, 5))
        clock.set(TODAY)
        months = engine.monthly_breakdown(h.id)

        draw_monthly_breakdown(ax, months, h.color_tag)
        labels = [t.get_text() for t in ax.get_yticklabels()]
        assert labels == ["Mar 2025", "Feb 2025", "Jan 2025"]
        # Hintergrund- und Wertebalken je Monat
        assert len(ax.patches) == 2 * len(months)

    def test_monthly_breakdown_empty(self, ax):
        draw_monthly_breakdown(ax, [], "#4F86F7")
        assert [t.get_text() for t in ax.texts] == ["Noch keine Monate vorhanden"]

    def test_weekly_progress(self, ax, engine, habit):
        engine.toggle_completion(habit.id)
        progress = engine.weekly_progress()
        draw_weekly_progress(ax, progress)
        heights = [p.get_height() for p in ax.patches]
        assert heights[-1] == pytest.approx(100.0)
        assert heights[:-1] == [0.0] * 6
        # 2025-03-15 ist ein Samstag
        assert ax.get_xticklabels()[-1].get_text() == "Sat"

    def test_calendar_month(self, ax, engine, habit):
        engine.toggle_completion(habit.id, date(2025, 3, 1))
        engine.toggle_completion(habit.id, date(2025, 3, 2))
        cells = engine.calendar_month(habit.id, 2025, 3)
        draw_calendar_month(ax, cells, habit.color_tag, "March 2025")

        circles = [p for p in ax.patches if isinstance(p, Circle)]
        assert len(circles) == 2
        # 7 Wochentage + 31 Tageszahlen
        assert len(ax.texts) == len(WEEKDAY_LABELS) + 31
        assert ax.get_title() == "March 2025"

    def test_clear_with_message(self, ax):
        ax.plot([1, 2], [3, 4])
        clear_ax_with_message(ax, "Keine Daten")
        assert not ax.lines
        assert ax.texts[0].get_text() == "Keine Daten"


@pytest.mark.unit
class TestCalendarCellAt:
    @pytest.fixture
    def cells(self, engine, habit):
        # März 2025 beginnt am Samstag → Tag 1 in Spalte 6, Zeile 0
        return engine.calendar_month(habit.id, 2025, 3)

    @pytest.mark.parametrize(
        "x, y, expected",
        [
            (6, 0, date(2025, 3, 1)),
            (0.3, 1.4, date(2025, 3, 2)),
            (1, 5, date(2025, 3, 31)),
            (5.6, 2.0, date(2025, 3, 15)),
        ],
    )
    def test_maps_position_to_day(self, cells, x, y, expected):
        assert calendar_cell_at(cells, x, y).day == expected

    @pytest.mark.parametrize(
        "x, y",
        [
            (0, 0),  # leere Zelle vor dem 1.
            (3, -1),  # Wochentagszeile
            (6, 5),  # leere Zelle nach dem 31.
            (7.2, 1),
            (-0.8, 1),
            (2, 6),
            (None, 1),
            (1, None),
        ],
    )
    def test_outside_grid_or_blank_is_none(self, cells, x, y):
        assert calendar_cell_at(cells, x, y) is None

    def test_clicked_day_can_be_toggled(self, engine, habit, cells):
        cell = calendar_cell_at(cells, 6, 0)
        assert engine.toggle_completion(habit.id, cell.day) is True
        assert engine.is_completed(habit.id, date(2025, 3, 1))
        assert engine.calendar_month(habit.id, 2025, 3)[6].completed
