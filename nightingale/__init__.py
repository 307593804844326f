"""SQLite-backed data models for alert events, mutes, dashboards, targets, teams and task templates."""

__version__ = "5.7.1"