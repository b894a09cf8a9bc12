"""Shared plotting constants and styling."""
