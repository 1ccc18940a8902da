"""Translation tables and template formatting."""
