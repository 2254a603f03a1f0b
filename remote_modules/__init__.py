"""Remote-fallback module resolution and caching."""
