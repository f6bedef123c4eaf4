"""Runtime configuration resolved from environment variables."""
