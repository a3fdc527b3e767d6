"""Command line entry points for pg-morph."""
