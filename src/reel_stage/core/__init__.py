"""Core configuration for Reel Stage."""
