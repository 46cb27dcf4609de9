"""Command-line interface for composectl."""
