"""Shared errors and logging helpers."""
