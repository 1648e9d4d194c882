"""Command-line interface for Nimbus."""
