"""Application-wide configuration for Kiracord."""
