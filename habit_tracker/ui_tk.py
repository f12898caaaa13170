from __future__ import annotations

# -----------------------------------------------------------------------------
# UI layer (Tkinter + Matplotlib)
# -----------------------------------------------------------------------------
# Verantwortlich für:
# - Anlegen/Löschen von Habits und Abhaken des heutigen Tages
# - Anzeige von Serie, Gesamtzahl und Jahresquote des ausgewählten Habits
# - Visualisierung (Monatsübersicht, letzte 7 Tage, Monatskalender)
#
# Wichtig (Architekturregel):
# Die UI greift nicht direkt auf SQL/DB zu, sondern verwendet ausschließlich
# `HabitTrackingEngine`. Gezeichnet wird über die Funktionen in `charts.py`.
# -----------------------------------------------------------------------------


import logging
from datetime import date
from tkinter import Tk, ttk, StringVar, messagebox
from typing import Optional

import matplotlib
matplotlib.use("TkAgg")
from matplotlib.figure import Figure
from matplotlib.backends.backend_tkagg import FigureCanvasTkAgg

from habit_tracker.charts import (
    calendar_cell_at,
    clear_ax_with_message,
    draw_calendar_month,
    draw_monthly_breakdown,
    draw_weekly_progress,
)
from habit_tracker.models import HABIT_COLORS, HABIT_EMOJIS, Habit
from habit_tracker.services import HabitTrackingEngine
from habit_tracker.validation import ValidationError, parse_color, parse_date, parse_emoji, parse_title

logger = logging.getLogger(__name__)

_MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


class HabitTrackerApp:
    """
    Tkinter-Hauptfenster des Habit-Trackers (UI-Schicht).

    Zweck:
        Stellt Habit-Liste, Eingabemaske und Diagramme bereit.

    Ablauf:
        1) Engine bootstrappen (DB öffnen + Zustand laden)
        2) Standard-Habits anlegen (falls noch keine vorhanden)
        3) Widgets aufbauen, Tabelle füllen und Diagramme zeichnen
    """

    def __init__(self, root: Tk, engine: Optional[HabitTrackingEngine] = None) -> None:
        self.root = root
        root.title("Habit Tracker")

        self.engine = engine or HabitTrackingEngine.bootstrap()
        self.engine.ensure_default_habits()

        # Monat, der im Kalender-Tab angezeigt wird
        today = self.engine.clock.today()
        self.calendar_month = date(today.year, today.month, 1)

        self._build_ui()
        self.refresh()

    # -----------------------------
    # UI build
    # -----------------------------
    def _build_ui(self) -> None:
        """Erzeugt und arrangiert alle Widgets (links Liste/Formular, rechts Diagramme)."""

        self.root.geometry("1200x720")
        self.root.minsize(980, 600)

        paned = ttk.Panedwindow(self.root, orient="horizontal")
        paned.pack(fill="both", expand=True)

        left = ttk.Frame(paned, padding=12)
        right = ttk.Frame(paned, padding=8)
        paned.add(left, weight=3)
        paned.add(right, weight=2)
        left.columnconfigure(1, weight=1)

        self.header_var = StringVar(value="")
        ttk.Label(left, textvariable=self.header_var, font=("TkDefaultFont", 14, "bold")).grid(
            row=0, column=0, columnspan=3, sticky="w", pady=(0, 10)
        )

        self.v_title = StringVar(value="")
        self.v_emoji = StringVar(value=HABIT_EMOJIS[0])
        self.v_color = StringVar(value=HABIT_COLORS[0])
        self.v_date = StringVar(value="")

        ttk.Label(left, text="Name").grid(row=1, column=0, sticky="w", pady=2)
        ttk.Entry(left, textvariable=self.v_title).grid(row=1, column=1, sticky="ew", pady=2)

        ttk.Label(left, text="Emoji").grid(row=2, column=0, sticky="w", pady=2)
        ttk.Combobox(left, textvariable=self.v_emoji, values=HABIT_EMOJIS, width=6).grid(
            row=2, column=1, sticky="w", pady=2
        )

        ttk.Label(left, text="Farbe").grid(row=3, column=0, sticky="w", pady=2)
        ttk.Combobox(left, textvariable=self.v_color, values=HABIT_COLORS, width=10).grid(
            row=3, column=1, sticky="w", pady=2
        )

        btns = ttk.Frame(left)
        btns.grid(row=4, column=0, columnspan=3, sticky="e", pady=(8, 8))
        ttk.Button(btns, text="Anlegen", command=self.on_add).grid(row=0, column=0, padx=(0, 6))
        ttk.Button(btns, text="Heute erledigt", command=self.on_toggle_today).grid(row=0, column=1, padx=(0, 6))
        ttk.Button(btns, text="Löschen", command=self.on_delete).grid(row=0, column=2, padx=(0, 6))
        ttk.Button(btns, text="Refresh", command=self.refresh).grid(row=0, column=3, padx=(0, 6))
        ttk.Button(btns, text="Schließen", command=self.on_close).grid(row=0, column=4)
        ttk.Label(btns, text="Datum").grid(row=1, column=0, sticky="e", pady=(6, 0))
        ttk.Entry(btns, textvariable=self.v_date, width=12).grid(row=1, column=1, sticky="ew", pady=(6, 0))
        ttk.Button(btns, text="Tag umschalten", command=self.on_toggle_date).grid(
            row=1, column=2, columnspan=2, sticky="w", padx=(6, 0), pady=(6, 0)
        )

        self.table = ttk.Treeview(
            left,
            columns=("emoji", "title", "streak", "total", "today"),
            show="headings",
            height=14,
        )
        for col, title, width, anchor in [
            ("emoji", "", 40, "center"),
            ("title", "Habit", 260, "w"),
            ("streak", "Serie", 70, "center"),
            ("total", "Gesamt", 70, "center"),
            ("today", "Heute", 60, "center"),
        ]:
            self.table.heading(col, text=title)
            self.table.column(col, width=width, anchor=anchor)
        self.table.grid(row=5, column=0, columnspan=3, sticky="nsew")
        left.rowconfigure(5, weight=1)
        self.table.bind("<<TreeviewSelect>>", self._on_table_select)
        self.table.bind("<Double-1>", lambda _e: self.on_toggle_today())

        # ---------------- Right side: Detail + Diagramme ----------------
        right.rowconfigure(1, weight=1)
        right.columnconfigure(0, weight=1)

        self.detail_var = StringVar(value="")
        ttk.Label(right, textvariable=self.detail_var, justify="left").grid(row=0, column=0, sticky="w", pady=(0, 8))

        nb = ttk.Notebook(right)
        nb.grid(row=1, column=0, sticky="nsew")

        tab_month = ttk.Frame(nb)
        tab_week = ttk.Frame(nb)
        tab_cal = ttk.Frame(nb)
        for t in (tab_month, tab_week, tab_cal):
            t.rowconfigure(1, weight=1)
            t.columnconfigure(0, weight=1)
        nb.add(tab_month, text="Monatsübersicht")
        nb.add(tab_week, text="Letzte 7 Tage")
        nb.add(tab_cal, text="Kalender")

        self._fig_month = Figure(figsize=(4, 3.2), dpi=100)
        self._ax_month = self._fig_month.add_subplot(111)
        self._canvas_month = FigureCanvasTkAgg(self._fig_month, master=tab_month)
        self._canvas_month.get_tk_widget().grid(row=1, column=0, sticky="nsew")

        self._fig_week = Figure(figsize=(4, 3.2), dpi=100)
        self._ax_week = self._fig_week.add_subplot(111)
        self._canvas_week = FigureCanvasTkAgg(self._fig_week, master=tab_week)
        self._canvas_week.get_tk_widget().grid(row=1, column=0, sticky="nsew")

        nav = ttk.Frame(tab_cal)
        nav.grid(row=0, column=0, sticky="ew")
        ttk.Button(nav, text="◀", width=3, command=lambda: self.on_change_month(-1)).pack(side="left")
        ttk.Button(nav, text="▶", width=3, command=lambda: self.on_change_month(1)).pack(side="right")

        self._fig_cal = Figure(figsize=(4, 3.2), dpi=100)
        self._ax_cal = self._fig_cal.add_subplot(111)
        self._canvas_cal = FigureCanvasTkAgg(self._fig_cal, master=tab_cal)
        self._canvas_cal.get_tk_widget().grid(row=1, column=0, sticky="nsew")
        self._canvas_cal.mpl_connect("button_press_event", self._on_calendar_click)
        self._calendar_cells: list = []

        nb.bind("<<NotebookTabChanged>>", lambda _e: self._safe_update_plots())

    # -----------------------------
    # Helpers
    # -----------------------------
    def _selected(self) -> Optional[Habit]:
        return self.engine.selected_habit

    def _require_selected(self) -> Habit:
        habit = self._selected()
        if habit is None:
            raise ValidationError("Bitte zuerst ein Habit in der Liste auswählen.")
        return habit

    def _update_header(self) -> None:
        habits = self.engine.habits
        best = max((self.engine.current_streak(h.id) for h in habits), default=0)
        rate = self.engine.today_completion_rate()
        self.header_var.set(f"{best}-Tage-Serie – heute {rate:.0%} erledigt ({len(habits)} Habits)")

    def _update_detail(self) -> None:
        habit = self._selected()
        if habit is None:
            self.detail_var.set("Kein Habit ausgewählt")
            return
        stats = self.engine.yearly_stats(habit.id)
        self.detail_var.set(
            "\n".join(
                [
                    f"{habit.emoji}  {habit.title}",
                    f"Serie: {self.engine.current_streak(habit.id)} Tage "
                    f"(längste: {self.engine.longest_streak(habit.id)})",
                    f"Gesamt: {self.engine.total_completions(habit.id)}",
                    f"Dieses Jahr: {stats.completed_days} von {stats.total_days} Tagen ({stats.percentage:.0f} %)",
                ]
            )
        )

    def _safe_update_plots(self) -> None:
        """Aktualisiert Plots; Fehler werden angezeigt statt die GUI zu beenden."""

        try:
            self._update_plots()
        except Exception as exc:
            logger.exception("Diagramme konnten nicht gezeichnet werden")
            messagebox.showerror("Plot-Fehler", str(exc))

    def _update_plots(self) -> None:
        habit = self._selected()
        color = habit.color_tag if habit else HABIT_COLORS[0]

        if habit is None:
            clear_ax_with_message(self._ax_month, "Habit auswählen")
        else:
            draw_monthly_breakdown(self._ax_month, self.engine.monthly_breakdown(habit.id), color)
        self._fig_month.tight_layout()
        self._canvas_month.draw()

        draw_weekly_progress(self._ax_week, self.engine.weekly_progress(), color)
        self._fig_week.tight_layout()
        self._canvas_week.draw()

        m = self.calendar_month
        title = f"{_MONTH_NAMES[m.month - 1]} {m.year}"
        if habit is None:
            self._calendar_cells = []
            clear_ax_with_message(self._ax_cal, "Habit auswählen")
        else:
            cells = self.engine.calendar_month(habit.id, m.year, m.month)
            self._calendar_cells = cells
            draw_calendar_month(self._ax_cal, cells, color, title)
        self._canvas_cal.draw()

    def refresh(self) -> None:
        """Lädt Tabelle/Kopfzeile neu und aktualisiert die Diagramme."""

        selected = self._selected()
        for item in self.table.get_children():
            self.table.delete(item)

        for h in self.engine.habits:
            self.table.insert(
                "",
                "end",
                iid=str(h.id),
                values=(
                    h.emoji,
                    h.title,
                    self.engine.current_streak(h.id),
                    self.engine.total_completions(h.id),
                    "✓" if self.engine.is_completed_today(h.id) else "",
                ),
            )
        if selected is not None and self.table.exists(str(selected.id)):
            self.table.selection_set(str(selected.id))

        self._update_header()
        self._update_detail()
        self._safe_update_plots()

        err = self.engine.last_persistence_error
        if err is not None:
            self.engine.last_persistence_error = None
            messagebox.showwarning("Speichern", f"Daten konnten nicht gespeichert werden:\n{err}")

    # -----------------------------
    # Event-Handler
    # -----------------------------
    def on_add(self) -> None:
        try:
            title = parse_title(self.v_title.get())
            emoji = parse_emoji(self.v_emoji.get())
            color = parse_color(self.v_color.get())
            habit = self.engine.add_habit(title, emoji, color)
            self.engine.select_habit(habit.id)
            self.v_title.set("")
            self.refresh()
        except Exception as exc:
            messagebox.showerror("Fehler", str(exc))

    def on_toggle_today(self) -> None:
        try:
            habit = self._require_selected()
            self.engine.toggle_completion(habit.id)
            self.refresh()
        except Exception as exc:
            messagebox.showerror("Fehler", str(exc))

    def on_toggle_date(self) -> None:
        """Schaltet den im Feld „Datum“ eingegebenen Tag um (leer = heute)."""

        try:
            habit = self._require_selected()
            day = parse_date(self.v_date.get())
            self.engine.toggle_completion(habit.id, day)
            self.refresh()
        except Exception as exc:
            messagebox.showerror("Fehler", str(exc))

    def _on_calendar_click(self, event) -> None:
        # Klick auf einen Kalendertag schaltet genau diesen Tag um
        if event.inaxes is not self._ax_cal:
            return
        cell = calendar_cell_at(self._calendar_cells, event.xdata, event.ydata)
        habit = self._selected()
        if cell is None or habit is None:
            return
        try:
            self.engine.toggle_completion(habit.id, cell.day)
            self.refresh()
        except Exception as exc:
            messagebox.showerror("Fehler", str(exc))

    def on_delete(self) -> None:
        try:
            habit = self._require_selected()
            if not messagebox.askyesno("Bestätigung", f"„{habit.title}“ wirklich löschen?"):
                return
            self.engine.delete_habit(habit.id)
            self.refresh()
        except Exception as exc:
            messagebox.showerror("Fehler", str(exc))

    def on_change_month(self, delta: int) -> None:
        m = self.calendar_month
        index = m.year * 12 + (m.month - 1) + delta
        self.calendar_month = date(index // 12, index % 12 + 1, 1)
        self._safe_update_plots()

    def _on_table_select(self, _evt=None) -> None:
        sel = self.table.selection()
        if not sel:
            return
        self.engine.select_habit(sel[0])
        self._update_detail()
        self._safe_update_plots()

    def on_close(self) -> None:
        """Schließt Engine/DB und beendet das Tkinter-Fenster."""

        try:
            self.engine.close()
        finally:
            self.root.destroy()


def run(engine: Optional[HabitTrackingEngine] = None) -> None:
    """
    Startet die Tkinter-GUI (Hilfsfunktion für main.py).

    Zweck:
        Erstellt das Root-Fenster, instanziiert `HabitTrackerApp` und startet die Eventloop.
    """

    root = Tk()
    try:
        ttk.Style().theme_use("clam")
    except Exception:
        logger.debug("Theme 'clam' nicht verfügbar", exc_info=True)
    app = HabitTrackerApp(root, engine)
    root.protocol("WM_DELETE_WINDOW", app.on_close)
    root.mainloop()
