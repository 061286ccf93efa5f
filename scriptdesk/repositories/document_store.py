"""Collection-scoped document store on top of SQLAlchemy.

A DocumentStore addresses whole JSON documents by id inside one named
collection.  It is the only code that touches the ``documents`` table;
ProjectRepository and ScriptRepository build typed access on top of it.

Guarantees:
    - ``update`` replaces one document body in a single UPDATE statement, so a
      read-modify-write issued as one ``update`` call is atomic per document.
    - Each write increments the document's ``revision``.  Passing
      ``expected_revision`` turns the write into a compare-and-set that raises
      ConflictError on mismatch; omitting it skips the check.
    - No method commits.  The service owning the unit of work commits.

Filters are equality matches on dotted body paths (``{"metadata.status":
"draft"}``); a list/tuple/set value matches any of its members.  String
criteria are pushed into SQL; everything else is matched in Python.
"""

import json
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Type

from sqlalchemy import delete as sql_delete, update as sql_update
from sqlalchemy.orm import Query, Session
from sqlalchemy.sql import func

from ..exceptions import ConflictError, DuplicateKeyError, NotFoundError
from ..models import StoredDocument, StoreIndex

ASCENDING = 1
DESCENDING = -1

Filter = Dict[str, Any]
SortSpec = Sequence[Tuple[str, int]]

_MISSING = object()

logger = logging.getLogger(__name__)


def get_path(body: Dict[str, Any], path: str) -> Any:
    """Resolve a dotted path inside a document body, or _MISSING."""
    current: Any = body
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def matches(body: Dict[str, Any], criteria: Optional[Filter]) -> bool:
    """True if every criterion in *criteria* holds for *body*."""
    if not criteria:
        return True
    for path, expected in criteria.items():
        value = get_path(body, path)
        if isinstance(expected, (list, tuple, set, frozenset)):
            if value is _MISSING or value not in expected:
                return False
        elif expected is None:
            if value is not _MISSING and value is not None:
                return False
        elif value is _MISSING or value != expected:
            return False
    return True


def text_matches(body: Dict[str, Any], text: Optional[str], fields: Sequence[str]) -> bool:
    """Case-insensitive substring match of *text* against any of *fields*.

    A list-valued field matches when any of its string members does.
    """
    if not text:
        return True
    needle = text.casefold()
    for path in fields:
        value = get_path(body, path)
        candidates = value if isinstance(value, list) else [value]
        for candidate in candidates:
            if isinstance(candidate, str) and needle in candidate.casefold():
                return True
    return False


_ISO_DATETIME = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d{1,6})\d*)?"
    r"(Z|[+-]\d{2}:\d{2})?$"
)


def _parse_timestamp(value: str) -> Optional[datetime]:
    """Parse the ISO form timestamps are stored in; None if *value* is not one."""
    m = _ISO_DATETIME.match(value)
    if m is None:
        return None
    year, month, day, hour, minute, second = (int(g) for g in m.groups()[:6])
    micros = int((m.group(7) or "0").ljust(6, "0"))
    offset = m.group(8)
    try:
        if offset in (None, "Z"):
            tz = timezone.utc
        else:
            sign = -1 if offset[0] == "-" else 1
            tz = timezone(sign * timedelta(hours=int(offset[1:3]), minutes=int(offset[4:6])))
        return datetime(year, month, day, hour, minute, second, micros, tzinfo=tz)
    except ValueError:
        return None


def _sort_key(path: str):
    # Ranks keep mixed value types comparable: missing < numbers < timestamps < strings.
    def key(body: Dict[str, Any]):
        value = get_path(body, path)
        if value is _MISSING or value is None:
            return (0,)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return (1, value)
        if isinstance(value, str):
            parsed = _parse_timestamp(value)
            if parsed is not None:
                return (2, parsed)
            return (3, value)
        return (4, json.dumps(value, sort_keys=True, default=str))
    return key


class DocumentStore:
    """CRUD, query and index declaration for one collection.

    Args:
        db: SQLAlchemy session for the current unit of work.
        collection: Collection name (e.g. ``"projects"``).
        not_found_error: NotFoundError subclass raised by ``get`` /
            ``update`` / ``delete`` for missing ids.
    """

    def __init__(
        self,
        db: Session,
        collection: str,
        not_found_error: Type[NotFoundError] = NotFoundError,
    ):
        self.db = db
        self.collection = collection
        self.not_found_error = not_found_error

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _base_query(self) -> Query:
        return self.db.query(StoredDocument).filter(StoredDocument.collection == self.collection)

    def _filtered_query(self, criteria: Optional[Filter]) -> Query:
        """Push string equality criteria into SQL."""
        query = self._base_query()
        for path, expected in (criteria or {}).items():
            column = StoredDocument.body[tuple(path.split("."))].as_string()
            if isinstance(expected, str):
                query = query.filter(column == expected)
            elif (
                isinstance(expected, (list, tuple, set, frozenset))
                and expected
                and all(isinstance(v, str) for v in expected)
            ):
                query = query.filter(column.in_(list(expected)))
        return query

    def _get_row(self, doc_id: str) -> Optional[StoredDocument]:
        return self._base_query().filter(StoredDocument.id == doc_id).first()

    def get_optional(self, doc_id: str) -> Optional[Dict[str, Any]]:
        """Return a copy of the document body, or None if not found."""
        row = self._get_row(doc_id)
        if row is None:
            return None
        return dict(row.body)

    def get(self, doc_id: str) -> Dict[str, Any]:
        """Return a copy of the document body. Raises not_found_error if missing."""
        body = self.get_optional(doc_id)
        if body is None:
            raise self.not_found_error(doc_id)
        return body

    def find(
        self,
        criteria: Optional[Filter] = None,
        sort: Optional[SortSpec] = None,
        skip: int = 0,
        limit: Optional[int] = None,
        text: Optional[str] = None,
        text_fields: Sequence[str] = (),
    ) -> List[Dict[str, Any]]:
        """Find documents matching *criteria*, sorted, then paginated.

        When *text* is given, a document must also contain it (case-insensitive)
        in at least one of *text_fields*.
        """
        bodies = [
            dict(row.body)
            for row in self._filtered_query(criteria).order_by(StoredDocument.id).all()
            if matches(row.body, criteria) and text_matches(row.body, text, text_fields)
        ]
        # Stable sorts applied from the least significant key.
        for path, direction in reversed(list(sort or [])):
            bodies.sort(key=_sort_key(path), reverse=direction == DESCENDING)

        end = None if limit is None else skip + limit
        return bodies[skip:end]

    def count(
        self,
        criteria: Optional[Filter] = None,
        text: Optional[str] = None,
        text_fields: Sequence[str] = (),
    ) -> int:
        return sum(
            1 for row in self._filtered_query(criteria).all()
            if matches(row.body, criteria) and text_matches(row.body, text, text_fields)
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, body: Dict[str, Any], doc_id: Optional[str] = None) -> Dict[str, Any]:
        """Insert a new document under *doc_id*, or ``body["id"]`` when omitted."""
        doc_id = doc_id or body.get("id")
        if not doc_id:
            raise ValueError("Document needs an id")

        if self._get_row(doc_id) is not None:
            raise DuplicateKeyError(self.collection, "_id_")

        stored = {**body, "id": doc_id, "revision": 1}
        self._check_unique(stored)

        self.db.add(StoredDocument(
            collection=self.collection,
            id=doc_id,
            body=stored,
            revision=1,
        ))
        self.db.flush()
        logger.debug("Created document", extra={"collection": self.collection, "doc_id": doc_id})
        return dict(stored)

    def update(
        self,
        doc_id: str,
        body: Dict[str, Any],
        expected_revision: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Replace a document body atomically and return the stored body."""
        row = self._get_row(doc_id)
        if row is None:
            raise self.not_found_error(doc_id)

        current = row.revision if expected_revision is None else expected_revision
        stored = {**body, "id": doc_id, "revision": current + 1}
        self._check_unique(stored, exclude_id=doc_id)

        stmt = (
            sql_update(StoredDocument)
            .where(
                StoredDocument.collection == self.collection,
                StoredDocument.id == doc_id,
            )
            .values(body=stored, revision=current + 1, updated_at=func.now())
        )
        if expected_revision is not None:
            stmt = stmt.where(StoredDocument.revision == expected_revision)

        result = self.db.execute(stmt.execution_options(synchronize_session=False))
        if result.rowcount == 0:
            raise ConflictError(doc_id)

        self.db.expire(row)
        logger.debug(
            "Updated document",
            extra={"collection": self.collection, "doc_id": doc_id, "revision": current + 1},
        )
        return dict(stored)

    def delete(self, doc_id: str) -> None:
        result = self.db.execute(
            sql_delete(StoredDocument)
            .where(
                StoredDocument.collection == self.collection,
                StoredDocument.id == doc_id,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise self.not_found_error(doc_id)
        self.db.expire_all()

    def delete_many(self, criteria: Optional[Filter] = None) -> int:
        """Delete every matching document. Returns the number removed."""
        ids = [body["id"] for body in self.find(criteria)]
        if not ids:
            return 0
        self.db.execute(
            sql_delete(StoredDocument)
            .where(
                StoredDocument.collection == self.collection,
                StoredDocument.id.in_(ids),
            )
            .execution_options(synchronize_session=False)
        )
        self.db.expire_all()
        return len(ids)

    # ------------------------------------------------------------------
    # Indexes
    # ------------------------------------------------------------------

    def ensure_index(self, name: str, keys: Iterable[str], unique: bool = False) -> bool:
        """Declare an index. Idempotent: returns False if *name* already exists.

        A redeclaration with different options keeps the existing definition.
        """
        keys = list(keys)
        existing = (
            self.db.query(StoreIndex)
            .filter(StoreIndex.collection == self.collection, StoreIndex.name == name)
            .first()
        )
        if existing:
            if list(existing.keys) != keys or bool(existing.unique) != unique:
                logger.warning(
                    "Index already declared with different options, keeping existing",
                    extra={"collection": self.collection, "index": name},
                )
            return False

        self.db.add(StoreIndex(collection=self.collection, name=name, keys=keys, unique=unique))
        self.db.flush()
        logger.info("Declared index", extra={"collection": self.collection, "index": name})
        return True

    def list_indexes(self) -> List[StoreIndex]:
        return (
            self.db.query(StoreIndex)
            .filter(StoreIndex.collection == self.collection)
            .order_by(StoreIndex.name)
            .all()
        )

    def _check_unique(self, body: Dict[str, Any], exclude_id: Optional[str] = None) -> None:
        unique_indexes = [ix for ix in self.list_indexes() if ix.unique]
        if not unique_indexes:
            return

        others = [
            row.body for row in self._base_query().all()
            if row.id != exclude_id and row.id != body["id"]
        ]
        for index in unique_indexes:
            values = tuple(get_path(body, key) for key in index.keys)
            if any(v is _MISSING for v in values):
                continue
            for other in others:
                if tuple(get_path(other, key) for key in index.keys) == values:
                    raise DuplicateKeyError(self.collection, index.name)
