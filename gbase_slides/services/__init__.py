"""Presentation pipeline services."""
