"""sqlite-backed record of analysis runs."""
