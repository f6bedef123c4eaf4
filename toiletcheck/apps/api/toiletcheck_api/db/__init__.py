"""Database and cache access."""
