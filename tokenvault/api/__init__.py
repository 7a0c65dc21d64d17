"""HTTP routes and request dependencies."""
