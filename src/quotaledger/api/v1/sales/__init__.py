"""Sales endpoints."""
