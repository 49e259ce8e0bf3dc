"""Self-hosted travel and trip planner: SQLite storage, a JSON API and a web dashboard."""

__version__ = "0.1.0"