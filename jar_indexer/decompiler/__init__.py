"""Archive filtering and source reconstruction."""
