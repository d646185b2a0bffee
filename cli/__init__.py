"""Command line interface for the read-later collector."""
