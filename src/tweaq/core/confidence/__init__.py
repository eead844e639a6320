"""Confidence scoring and tier selection."""
