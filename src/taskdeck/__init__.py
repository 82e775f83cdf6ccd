"""taskdeck: task/project dashboard core with a local JSON-backed store."""

__version__ = "0.1.0"
