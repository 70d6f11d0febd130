"""Adapters to infrastructure."""
