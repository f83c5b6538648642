"""Core utilities: configuration, logging and date helpers."""
