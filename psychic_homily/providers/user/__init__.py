"""User account persistence (credentials, lockout bookkeeping)."""
