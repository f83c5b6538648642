"""Quotas endpoints."""
