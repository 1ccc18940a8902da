"""Value objects shared across the governance engine."""
