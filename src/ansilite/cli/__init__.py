"""Ansilite command-line entry points."""
