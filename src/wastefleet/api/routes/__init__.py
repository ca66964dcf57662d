"""Route group exports."""

from . import bins, dashboard, drivers, health, routes, schedules

__all__ = ["bins", "dashboard", "drivers", "health", "routes", "schedules"]
