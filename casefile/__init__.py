"""Case file document attachment and completion engine."""
