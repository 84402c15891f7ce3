"""Concrete provider adapters (SQLite storage, in-memory cache, Discord)."""
