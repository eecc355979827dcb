"""Pipeline status tracking service."""
