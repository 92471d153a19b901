"""Shared helpers for the tabclean package."""
