"""fsagent - natural-language filesystem agent with backups and undo."""

__version__ = "0.1.0"
