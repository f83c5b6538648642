"""Payments endpoints."""
