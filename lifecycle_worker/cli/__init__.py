"""Command-line interface for the lifecycle worker."""
