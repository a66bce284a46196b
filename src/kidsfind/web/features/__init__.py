"""Feature API routers, one per monitoring service."""
