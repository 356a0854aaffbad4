"""Persistence and domain engine for the Reel Stage creator community."""

from reel_stage.engine import Engine

__all__ = ["Engine"]
