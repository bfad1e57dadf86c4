"""In-memory metrics for the vision analysis pipeline."""
