"""Venue persistence and the pending venue edit queue."""
