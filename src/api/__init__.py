"""HTTP API for triggering reminder dispatch."""
