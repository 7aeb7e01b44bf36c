"""Protocol-specific parsing."""
