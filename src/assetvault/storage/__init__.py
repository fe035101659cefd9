"""Filesystem placement of committed assets."""

from .path_generator import DefaultPathLayout, PathGenerator, PathHelper, remove_storage_path

__all__ = ["DefaultPathLayout", "PathGenerator", "PathHelper", "remove_storage_path"]
