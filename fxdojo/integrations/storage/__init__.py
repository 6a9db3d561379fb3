"""Uploaded file storage on the local filesystem."""

from .local import LocalStorage, get_storage

__all__ = ["LocalStorage", "get_storage"]
