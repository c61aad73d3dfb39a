"""Core models, configuration and shared helpers."""
