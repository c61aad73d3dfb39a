"""Ranking services built on the core models."""
