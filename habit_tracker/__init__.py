"""
Habit Tracker – Prototyp.

Zweck:
    Dieses Paket bündelt den Code des Habit-Trackers und folgt einer
    Schichtenarchitektur (UI → Service → Repository → Model).

Inhalt:
    - UI-Schicht: Tkinter-Oberfläche und Matplotlib-Diagramme (keine fachliche Logik)
    - Service-Schicht: `HabitTrackingEngine` (Serien, Monats-/Jahreskennzahlen, Kalender)
    - Repository-Schicht: Blob-Speicher auf SQLite + JSON-Codecs
    - Model-Schicht: Datenklassen (Entities)

Hinweise:
    Diese Datei markiert das Verzeichnis als Python-Paket und enthält keine Laufzeitlogik.
"""

__all__ = []
