"""Exercise catalog, pattern mapping and initial plan selection."""
