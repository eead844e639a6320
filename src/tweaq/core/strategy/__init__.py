"""Strategy planning and execution."""
