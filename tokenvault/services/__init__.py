"""Core services: token codec, password hashing, storage and auth flows."""
