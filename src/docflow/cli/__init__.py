"""Command line interface for Docflow."""
