"""Helpers shared across routers and services: logging, redaction, scoring, CSV and QR codes."""
