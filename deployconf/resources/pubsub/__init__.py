"""Pub/Sub resource kinds."""
