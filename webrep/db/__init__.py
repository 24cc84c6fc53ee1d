"""Database layer for WebRep."""
