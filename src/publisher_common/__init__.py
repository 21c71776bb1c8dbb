"""Shared helpers for publisher services."""
