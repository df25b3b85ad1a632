"""Command-line tools for Decision Forge."""
