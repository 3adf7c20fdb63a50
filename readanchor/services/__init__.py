"""Anchoring services: normalization, matching, resolution and batching."""
