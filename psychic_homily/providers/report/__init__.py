"""User-submitted show and artist reports."""
