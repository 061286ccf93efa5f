"""Base repository with shared typed access to one store collection.

Eliminates duplicated __init__, get/save/list logic across repositories.
Subclasses specify collection, schema, not_found_error and indexes; the base
converts between pydantic models and stored JSON bodies.
"""

from typing import Any, Dict, Generic, List, Optional, Sequence, Tuple, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..exceptions import NotFoundError
from .document_store import DESCENDING, DocumentStore, Filter, SortSpec

ModelT = TypeVar("ModelT", bound=BaseModel)

# (name, keys, unique)
IndexSpec = Tuple[str, Sequence[str], bool]


class BaseRepository(Generic[ModelT]):
    """Shared repository logic for document collections.

    Class variables to set in subclasses:
        collection:      Store collection name
        schema:          Pydantic model of the stored document
        not_found_error: Exception class raised for missing ids
        indexes:         Index declarations applied by ensure_indexes()
        text_fields:     Body paths searched by text_search()
    """

    collection: str
    schema: Type[ModelT]
    not_found_error: Type[NotFoundError]
    indexes: Sequence[IndexSpec] = ()
    text_fields: Sequence[str] = ()

    def __init__(self, db: Session):
        self.db = db
        self.store = DocumentStore(db, self.collection, self.not_found_error)

    def ensure_indexes(self) -> int:
        """Declare this collection's indexes. Returns how many were new."""
        return sum(
            1 for name, keys, unique in self.indexes
            if self.store.ensure_index(name, keys, unique=unique)
        )

    def _load(self, body: Dict[str, Any]) -> ModelT:
        return self.schema.model_validate(body)

    def _dump(self, entity: ModelT) -> Dict[str, Any]:
        return entity.model_dump(mode="json")

    def get_by_id(self, entity_id: str) -> ModelT:
        """Get entity by id. Raises not_found_error if missing."""
        return self._load(self.store.get(entity_id))

    def create(self, entity: ModelT) -> ModelT:
        return self._load(self.store.create(self._dump(entity)))

    def save(self, entity: ModelT, expected_revision: Optional[int] = None) -> ModelT:
        """Replace the stored document with *entity* in one atomic write."""
        stored = self.store.update(entity.id, self._dump(entity), expected_revision)
        return self._load(stored)

    def delete(self, entity_id: str) -> None:
        self.store.delete(entity_id)

    def find(
        self,
        criteria: Optional[Filter] = None,
        sort: Optional[SortSpec] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[ModelT]:
        return [self._load(b) for b in self.store.find(criteria, sort, skip, limit)]

    def count(self, criteria: Optional[Filter] = None) -> int:
        return self.store.count(criteria)

    def text_search(
        self,
        text: str,
        criteria: Optional[Filter] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> Tuple[List[ModelT], int]:
        """Most recently updated matches for *text* in text_fields, plus the total."""
        found = self.store.find(
            criteria, [("updated_at", DESCENDING)], skip, limit,
            text=text, text_fields=self.text_fields,
        )
        total = self.store.count(criteria, text=text, text_fields=self.text_fields)
        return [self._load(b) for b in found], total
