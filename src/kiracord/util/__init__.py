"""Shared utilities (logging) for Kiracord."""
