"""Shared utilities for WebRep."""
