"""Shared drawing canvas core: stroke geometry, drawing sessions and remote sync."""
