"""ToiletCheck API - facility inspection tracking service."""

__version__ = "1.2.0"
