"""Utilities shared by local context modules."""
