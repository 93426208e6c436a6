"""Artifact writers: graph JSON, loop JSON and CSV exports."""
