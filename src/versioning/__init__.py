"""Version, range and range-policy value types."""
