"""Command-line interface for offline maintenance of the stored tree."""
