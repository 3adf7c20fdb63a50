"""Shared helpers for logging, tracing and error reporting."""
