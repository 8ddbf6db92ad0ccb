"""HTTP API for the placement portal."""
