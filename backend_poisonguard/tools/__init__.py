"""Command-line tools for offline analysis."""
