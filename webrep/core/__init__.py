"""Core ingestion logic for WebRep."""
