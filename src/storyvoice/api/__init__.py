"""HTTP API for story generation."""
