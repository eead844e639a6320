"""Tweaq Change Engine core pipeline."""
