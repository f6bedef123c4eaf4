"""Typed RPC layer served at /api/trpc/{router.procedure}."""
