"""Compute Engine resource kinds."""
