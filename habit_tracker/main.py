"""
Startpunkt der Anwendung (Habit Tracker).

Zweck:
    Richtet das Logging ein und startet die Tkinter-GUI. Die Oberfläche ruft
    ausschließlich die Service-Schicht (`HabitTrackingEngine`) auf.

Ausführung:
    python -m habit_tracker.main

Umgebungsvariablen:
    HABIT_TRACKER_DB         Pfad zur SQLite-Datei (Standard: data/habits.db)
    HABIT_TRACKER_LOG_LEVEL  Log-Level (Standard: INFO)
"""

from __future__ import annotations

import logging
import os
import sys

LOG_LEVEL_ENV = "HABIT_TRACKER_LOG_LEVEL"


def setup_logging() -> logging.Logger:
    """Konfiguriert das Root-Logging einmalig (stdout, Level aus der Umgebung)."""

    level_name = os.environ.get(LOG_LEVEL_ENV, "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger("matplotlib").setLevel(logging.WARNING)
    return logging.getLogger(__name__)


def main() -> None:
    """Prüft Tkinter, richtet das Logging ein und startet die GUI."""

    try:
        import tkinter  # noqa: F401
    except ModuleNotFoundError as exc:
        raise SystemExit(
            "Tkinter fehlt.\n"
            "- Linux (Debian/Ubuntu): sudo apt install python3-tk\n"
            "- Fedora: sudo dnf install python3-tkinter\n"
            "- Arch: sudo pacman -S tk\n"
            "Unter Windows/macOS bitte Python neu installieren und Tcl/Tk mit installieren."
        ) from exc

    from habit_tracker.ui_tk import run

    setup_logging().info("Habit Tracker startet")
    run()


if __name__ == "__main__":
    main()
