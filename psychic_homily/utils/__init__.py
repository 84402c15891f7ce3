"""Utility modules for Psychic Homily.

- **errors** -- Exception hierarchy rooted at PsychicHomilyError; each
  subclass carries the HTTP status the API maps it to.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **concurrency** -- Keyed advisory locks serialising duplicate-show checks.
- **text_normalizer** -- Name comparison (exact and rapidfuzz) and event
  title splitting for scraped listings.
- **slugs** -- URL slug generation with uniqueness suffixes.
- **dates** -- UTC storage format and timezone-aware "today" boundaries.
"""
