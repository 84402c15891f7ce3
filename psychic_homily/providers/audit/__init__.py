"""Admin audit log and dashboard counters."""
