"""Database models."""

from .stored_document import StoredDocument, StoreIndex

__all__ = ["StoredDocument", "StoreIndex"]
