"""Psychic Homily: live-music show listings with moderation workflows."""

__version__ = "0.1.0"
