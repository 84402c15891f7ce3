"""Show persistence: shows, their venues and their ordered bill."""
