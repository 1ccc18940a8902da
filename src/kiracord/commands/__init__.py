"""Prefix command dispatch and the built-in commands."""
