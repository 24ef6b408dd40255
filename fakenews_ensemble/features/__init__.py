"""Engineered interaction features."""
