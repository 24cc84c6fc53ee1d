"""Version information for WebRep."""

__version__ = "0.1.0"
