"""Plain-text command line presentation."""
