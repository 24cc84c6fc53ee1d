"""Command-line interface for WebRep."""
