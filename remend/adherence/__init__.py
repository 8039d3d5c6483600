"""Streaks, adherence rate and weekly summaries."""
