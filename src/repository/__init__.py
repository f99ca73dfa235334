"""Repository descriptor loading."""
