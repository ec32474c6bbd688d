# crud/document_store.py
import logging
import operator
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, Iterator, List, NamedTuple, Optional, Sequence, Set, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import DatabaseNotFoundError, StoreError, StoreErrorCode
from app.models.document import Document

logger = logging.getLogger(__name__)


FieldFilter = Tuple[str, str, Any]

TIMESTAMP_TAG = "__timestamp__"

_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


# Database failures the caller can act on; anything else is unavailable
_CODES_BY_MESSAGE = (
    ("readonly database", StoreErrorCode.PERMISSION_DENIED),
    ("permission denied", StoreErrorCode.PERMISSION_DENIED),
    ("disk is full", StoreErrorCode.RESOURCE_EXHAUSTED),
    ("too many connections", StoreErrorCode.RESOURCE_EXHAUSTED),
)


def error_code(exc: SQLAlchemyError) -> str:
    """Store error code for a failed database call."""
    message = str(getattr(exc, "orig", None) or exc).lower()
    for fragment, code in _CODES_BY_MESSAGE:
        if fragment in message:
            return code
    return StoreErrorCode.UNAVAILABLE


class DocumentSnapshot(NamedTuple):
    id: str
    path: str
    data: Dict[str, Any]


# =====================================================================
# VALUE ENCODING
# =====================================================================

def encode_value(value: Any) -> Any:
    """Turn datetimes into tagged UTC strings so they survive the JSON column."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return {TIMESTAMP_TAG: value.astimezone(timezone.utc).isoformat()}
    if isinstance(value, dict):
        return {key: encode_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(item) for item in value]
    return value


def decode_value(value: Any) -> Any:
    if isinstance(value, dict):
        if set(value) == {TIMESTAMP_TAG}:
            return datetime.fromisoformat(value[TIMESTAMP_TAG])
        return {key: decode_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [decode_value(item) for item in value]
    return value


def _order_key(value: Any) -> Tuple[int, Any]:
    """Values of different types order by type first, then by value."""
    if value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (1, value)
    if isinstance(value, (int, float)):
        return (2, value)
    if isinstance(value, datetime):
        return (3, value)
    if isinstance(value, str):
        return (4, value)
    if isinstance(value, list):
        return (5, value)
    return (6, value)


def _segments(path: str) -> List[str]:
    segments = [s for s in path.strip("/").split("/")]
    if not segments or any(not s for s in segments):
        raise StoreError(f"Invalid path: {path!r}", code=StoreErrorCode.INVALID_ARGUMENT)
    return segments


def _document_segments(path: str) -> List[str]:
    segments = _segments(path)
    if len(segments) % 2 != 0:
        raise StoreError(
            f"Document path must have an even number of segments: {path!r}",
            code=StoreErrorCode.INVALID_ARGUMENT,
        )
    return segments


def _collection_path(path: str) -> str:
    segments = _segments(path)
    if len(segments) % 2 != 1:
        raise StoreError(
            f"Collection path must have an odd number of segments: {path!r}",
            code=StoreErrorCode.INVALID_ARGUMENT,
        )
    return "/".join(segments)


# =====================================================================
# STORE CLIENT
# =====================================================================

class CRUDDocumentStore:
    """
    Hierarchical document store (collection/document/collection/...) kept in
    a single SQL table.

    Every call opens its own session, so one instance can be shared by
    concurrent callers.

    Cost: a collection group query selects rows by collection id and path
    prefix in SQL, then decodes that whole subset and applies field filters,
    ordering and limit in Python. A query scoped with `under` to one user
    therefore costs O(that user's records in the group), whatever the limit.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        indexed_collection_groups: Optional[Iterable[str]] = None,
    ):
        self.session_factory = session_factory
        self._indexes: Set[str] = set(indexed_collection_groups or [])
        self._index_lock = threading.Lock()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self.session_factory()
        try:
            yield db
        except SQLAlchemyError as exc:
            db.rollback()
            code = error_code(exc)
            raise StoreError(f"Document store call failed ({code}): {exc}", code=code) from exc
        finally:
            db.close()

    # =====================================================================
    # INDEXES
    # =====================================================================

    def create_index(self, collection_id: str) -> None:
        """Register a collection-group index so cross-collection queries may filter/order."""
        with self._index_lock:
            self._indexes.add(collection_id)
        logger.info(f"Collection group index created for '{collection_id}'")

    def has_index(self, collection_id: str) -> bool:
        with self._index_lock:
            return collection_id in self._indexes

    # =====================================================================
    # WRITE OPERATIONS
    # =====================================================================

    def put(self, path: str, data: Dict[str, Any], *, merge: bool = False) -> None:
        """
        Write a document.

        Args:
            path: Document path with an even number of segments
            data: Field values; datetimes are stored as timestamps
            merge: Overlay onto existing fields instead of replacing them
        """
        segments = _document_segments(path)
        path = "/".join(segments)
        encoded = encode_value(dict(data))

        with self._session() as db:
            row = db.get(Document, path)
            if row is None:
                row = Document(
                    path=path,
                    collection_path="/".join(segments[:-1]),
                    collection_id=segments[-2],
                    document_id=segments[-1],
                    data=encoded,
                )
                db.add(row)
            elif merge:
                row.data = {**row.data, **encoded}
            else:
                row.data = encoded
            db.commit()

    def delete(self, path: str) -> None:
        """
        Delete a document.

        Raises:
            DatabaseNotFoundError: If nothing is stored at path
        """
        path = "/".join(_document_segments(path))
        with self._session() as db:
            row = db.get(Document, path)
            if row is None:
                raise DatabaseNotFoundError(f"No document at {path}")
            db.delete(row)
            db.commit()

    # =====================================================================
    # READ OPERATIONS
    # =====================================================================

    def get(self, path: str) -> Optional[Dict[str, Any]]:
        path = "/".join(_document_segments(path))
        with self._session() as db:
            row = db.get(Document, path)
            return decode_value(row.data) if row is not None else None

    def query(
        self,
        collection_path: str,
        filters: Optional[Sequence[FieldFilter]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[DocumentSnapshot]:
        """Query the documents directly inside one collection."""
        collection_path = _collection_path(collection_path)
        with self._session() as db:
            rows = (
                db.query(Document)
                .filter(Document.collection_path == collection_path)
                .all()
            )
            snapshots = [self._snapshot(row) for row in rows]
        return self._apply(snapshots, filters, order_by, descending, limit)

    def list_documents(self, collection_path: str) -> List[DocumentSnapshot]:
        """All documents in a collection, ordered by id."""
        return sorted(self.query(collection_path), key=lambda snap: snap.id)

    def query_across_collections(
        self,
        collection_id: str,
        filters: Optional[Sequence[FieldFilter]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        under: Optional[str] = None,
    ) -> List[DocumentSnapshot]:
        """
        Query every collection named `collection_id` (a collection group).

        Only the collection id and `under` prefix narrow the SQL select; see
        the class docstring for what that costs.

        Args:
            under: Only consider documents below this path prefix

        Raises:
            StoreError: code failed-precondition when the query filters or
                orders and no collection group index exists
        """
        if (filters or order_by) and not self.has_index(collection_id):
            raise StoreError(
                f"The query requires an index. Create a collection group index on '{collection_id}'.",
                code=StoreErrorCode.FAILED_PRECONDITION,
            )

        with self._session() as db:
            q = db.query(Document).filter(Document.collection_id == collection_id)
            if under:
                prefix = "/".join(_segments(under)) + "/"
                q = q.filter(Document.path.startswith(prefix, autoescape=True))
            snapshots = [self._snapshot(row) for row in q.all()]
        return self._apply(snapshots, filters, order_by, descending, limit)

    # =====================================================================
    # HELPERS
    # =====================================================================

    @staticmethod
    def _snapshot(row: Document) -> DocumentSnapshot:
        return DocumentSnapshot(id=row.document_id, path=row.path, data=decode_value(row.data))

    @staticmethod
    def _matches(data: Dict[str, Any], filters: Sequence[FieldFilter]) -> bool:
        for field, op, value in filters:
            if field not in data:
                return False
            compare = _OPERATORS.get(op)
            if compare is None:
                raise StoreError(f"Unsupported operator {op!r}", code=StoreErrorCode.INVALID_ARGUMENT)
            try:
                if not compare(data[field], value):
                    return False
            except TypeError:
                return False
        return True

    def _apply(
        self,
        snapshots: List[DocumentSnapshot],
        filters: Optional[Sequence[FieldFilter]],
        order_by: Optional[str],
        descending: bool,
        limit: Optional[int],
    ) -> List[DocumentSnapshot]:
        if limit is not None and limit < 0:
            raise StoreError(f"limit must be >= 0, got {limit}", code=StoreErrorCode.INVALID_ARGUMENT)

        if filters:
            snapshots = [snap for snap in snapshots if self._matches(snap.data, filters)]

        if order_by:
            # Documents without the ordering field are not part of the result;
            # ties fall back to the document id in the same direction.
            snapshots = [snap for snap in snapshots if order_by in snap.data]
            try:
                snapshots.sort(key=lambda snap: (_order_key(snap.data[order_by]), snap.id), reverse=descending)
            except TypeError as exc:
                raise StoreError(
                    f"Cannot order by '{order_by}': values are not comparable",
                    code=StoreErrorCode.INVALID_ARGUMENT,
                ) from exc
        else:
            snapshots.sort(key=lambda snap: snap.path)

        if limit is not None:
            snapshots = snapshots[:limit]
        return snapshots
