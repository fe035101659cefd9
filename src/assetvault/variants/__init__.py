"""Variant declaration and processing."""
