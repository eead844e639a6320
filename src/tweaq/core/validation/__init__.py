"""Validation Gate."""
