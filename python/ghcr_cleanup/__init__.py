"""Helpers for planning and executing GHCR pull-request image cleanup."""
