"""Operator-facing helpers: interaction, progress and environment validation."""
