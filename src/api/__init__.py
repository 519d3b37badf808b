"""HTTP API for the metrics engine."""
