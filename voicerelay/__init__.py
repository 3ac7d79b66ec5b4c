"""Presence and WebRTC signaling relay for a single voice-chat room."""

__version__ = "0.1.0"
