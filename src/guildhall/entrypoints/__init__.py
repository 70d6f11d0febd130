"""Entrypoints into the access core."""
