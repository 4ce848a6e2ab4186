"""Analytical base table: one row per county."""
