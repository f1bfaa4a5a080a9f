"""Shared helpers for hashing, paths, and CLI output."""
