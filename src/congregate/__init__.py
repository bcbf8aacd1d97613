"""Community meeting scheduling and participation analytics."""
