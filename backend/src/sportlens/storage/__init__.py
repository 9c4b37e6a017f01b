"""Image storage and retrieval."""

from sportlens.storage.image_store import ImageStore, guess_mime_type

__all__ = ["ImageStore", "guess_mime_type"]
