"""Committed assets: models, store pipeline, retention and cleanup."""
