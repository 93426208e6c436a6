"""JSON Schema checks for written artifacts."""
