"""Task service: per-user to-do items guarded by bearer tokens."""
