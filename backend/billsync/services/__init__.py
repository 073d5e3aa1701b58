"""Business logic services."""
