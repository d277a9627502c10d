"""Packaged data files (workflow registry, sync links)."""
