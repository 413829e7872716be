"""Command-line interface for conditional."""
