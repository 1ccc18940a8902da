"""Per-guild state: entity collections, aliases and settings."""
