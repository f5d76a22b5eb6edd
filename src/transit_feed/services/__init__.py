"""Feed processing services."""
