"""Hashed admin API tokens."""
