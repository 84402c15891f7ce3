"""Per-user lists: saved shows and favorite venues."""
