"""HTTP API for import plugins."""
