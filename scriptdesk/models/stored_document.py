"""Document store tables.

Every Project and Script is one row in ``documents``: a JSON body addressed
by (collection, id). ``store_indexes`` records index declarations per
collection.
"""

from sqlalchemy import Boolean, Column, Index, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from ..database import Base


class StoredDocument(Base):
    """One semi-structured document in a named collection."""

    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_collection_updated_at", "collection", "updated_at"),
    )

    collection = Column(String(64), primary_key=True)
    id = Column(String(64), primary_key=True)

    body = Column(JSON, nullable=False)

    # Incremented on every write; compared when a caller supplies
    # expected_revision.
    revision = Column(Integer, default=1, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class StoreIndex(Base):
    """An index declared on a collection (keys are dotted body paths)."""

    __tablename__ = "store_indexes"

    collection = Column(String(64), primary_key=True)
    name = Column(String(128), primary_key=True)
    keys = Column(JSON, nullable=False)
    unique = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
