# services/journal_gateway.py
import logging
from concurrent.futures import ALL_COMPLETED, ThreadPoolExecutor, wait
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

from app.core.config import settings
from app.core.exceptions import DatabaseNotFoundError, ReadError, StoreError, WriteError
from app.core.timezone import date_key_of_day, day_bounds, iter_days
from app.crud.document_store import CRUDDocumentStore, DocumentSnapshot
from app.schemas.journal import (
    Decoded,
    FullChargeEntry,
    JournalEntry,
    Skip,
    decode_full_charge,
    decode_journal_entry,
    full_charge_to_document,
    journal_entry_to_document,
)

logger = logging.getLogger(__name__)


USERS = "users"
JOURNALS = "journals"
ENTRIES = "entries"
FULL_CHARGES = "fullCharges"

Decoder = Callable[[Dict[str, Any]], Decoded]


class DeleteOutcome(str, Enum):
    deleted = "deleted"
    not_found = "not_found"


class JournalGateway:
    """
    Read/write path for journal entries and full-charge check-ins.

    Layout:
        users/{uid}/journals/{dateKey}                      partition marker
        users/{uid}/journals/{dateKey}/entries/{id}         JournalEntry
        users/{uid}/journals/{dateKey}/fullCharges/{id}     FullChargeEntry

    Cross-day reads use a collection-group query first. When the store
    rejects it with a recoverable code (a missing index), the gateway reads
    each date partition concurrently instead and merges the results.
    """

    def __init__(
        self,
        store: CRUDDocumentStore,
        *,
        user_id: Optional[str] = None,
        recoverable_codes: Optional[Iterable[str]] = None,
        max_workers: Optional[int] = None,
    ):
        self.store = store
        self.user_id = user_id or settings.FIXED_USER_ID
        self.recoverable_codes = frozenset(
            settings.RECOVERABLE_QUERY_ERROR_CODES if recoverable_codes is None else recoverable_codes
        )
        self.max_workers = max_workers or settings.FANOUT_MAX_WORKERS

    # =====================================================================
    # PATHS
    # =====================================================================

    @property
    def user_path(self) -> str:
        return f"{USERS}/{self.user_id}"

    @property
    def journals_path(self) -> str:
        return f"{self.user_path}/{JOURNALS}"

    def partition_path(self, date_key: str) -> str:
        return f"{self.journals_path}/{date_key}"

    def record_path(self, date_key: str, collection_id: str, record_id: str) -> str:
        return f"{self.partition_path(date_key)}/{collection_id}/{record_id}"

    # =====================================================================
    # JOURNAL ENTRIES
    # =====================================================================

    def save_entry(self, entry: JournalEntry) -> None:
        """
        Write an entry under its date partition. Re-saving the same id
        overwrites it.

        Raises:
            WriteError: If the store rejected the write
        """
        self._save(entry.date_key, ENTRIES, entry.id, journal_entry_to_document(entry))

    def get_entries_by_date(self, day: date) -> List[JournalEntry]:
        """Entries whose date key is `day`, newest first."""
        return self._get_by_date(day, ENTRIES, decode_journal_entry)

    def get_entries_by_date_range(self, start: date, end: date) -> List[JournalEntry]:
        """Entries whose date key falls within [start, end], newest first."""
        return self._get_by_date_range(start, end, ENTRIES, decode_journal_entry)

    def get_recent_entries(self, limit: Optional[int] = None) -> List[JournalEntry]:
        """The `limit` most recent entries across all dates, newest first."""
        return self._get_recent(limit, ENTRIES, decode_journal_entry)

    def delete_entry(self, entry: JournalEntry) -> DeleteOutcome:
        return self.delete_entry_by_key(entry.id, entry.date_key)

    def delete_entry_by_key(self, entry_id: str, date_key: str) -> DeleteOutcome:
        """
        Remove an entry by id and date key.

        Returns:
            DeleteOutcome.not_found when nothing was stored there

        Raises:
            WriteError: If the store failed for another reason
        """
        path = self.record_path(date_key, ENTRIES, entry_id)
        try:
            self.store.delete(path)
        except DatabaseNotFoundError:
            logger.warning(f"Delete skipped, no entry at {path}")
            return DeleteOutcome.not_found
        except StoreError as exc:
            logger.error(f"Delete failed for {path}: {exc}")
            raise WriteError(f"Could not delete entry {entry_id}", code=exc.code) from exc

        logger.info(f"Deleted entry {entry_id} ({date_key})")
        return DeleteOutcome.deleted

    # =====================================================================
    # FULL CHARGES
    # =====================================================================

    def save_full_charge(self, entry: FullChargeEntry) -> None:
        self._save(entry.date_key, FULL_CHARGES, entry.id, full_charge_to_document(entry))

    def get_full_charges_by_date(self, day: date) -> List[FullChargeEntry]:
        return self._get_by_date(day, FULL_CHARGES, decode_full_charge)

    def get_full_charges_by_date_range(self, start: date, end: date) -> List[FullChargeEntry]:
        return self._get_by_date_range(start, end, FULL_CHARGES, decode_full_charge)

    def get_recent_full_charges(self, limit: Optional[int] = None) -> List[FullChargeEntry]:
        return self._get_recent(limit, FULL_CHARGES, decode_full_charge)

    # =====================================================================
    # SHARED IMPLEMENTATION
    # =====================================================================

    def _save(self, date_key: str, collection_id: str, record_id: str, doc: Dict[str, Any]) -> None:
        path = self.record_path(date_key, collection_id, record_id)
        try:
            # The partition marker makes the day visible to list_documents
            self.store.put(self.partition_path(date_key), {"dateKey": date_key}, merge=True)
            self.store.put(path, doc)
        except StoreError as exc:
            logger.error(f"Write failed for {path} ({exc.code}): {exc}")
            raise WriteError(f"Could not save {collection_id} record {record_id}", code=exc.code) from exc
        logger.info(f"Saved {path}")

    def _decode_all(self, snapshots: List[DocumentSnapshot], decoder: Decoder) -> List[Any]:
        records = []
        for snap in snapshots:
            result = decoder(snap.data)
            if isinstance(result, Skip):
                logger.warning(f"Skipping malformed record {snap.path}: {result.reason}")
                continue
            records.append(result.value)
        return records

    def _read_partition(self, date_key: str, collection_id: str, decoder: Decoder) -> List[Any]:
        snapshots = self.store.query(
            f"{self.partition_path(date_key)}/{collection_id}",
            order_by="date",
            descending=True,
        )
        return self._decode_all(snapshots, decoder)

    def _is_recoverable(self, exc: StoreError) -> bool:
        return exc.code in self.recoverable_codes

    def _get_by_date(self, day: date, collection_id: str, decoder: Decoder) -> List[Any]:
        date_key = date_key_of_day(day)
        try:
            return self._read_partition(date_key, collection_id, decoder)
        except StoreError as exc:
            raise ReadError(f"Could not read {collection_id} for {date_key}", code=exc.code) from exc

    def _get_by_date_range(self, start: date, end: date, collection_id: str, decoder: Decoder) -> List[Any]:
        if end < start:
            return []

        lower, upper = day_bounds(start, end)
        try:
            snapshots = self.store.query_across_collections(
                collection_id,
                filters=[("date", ">=", lower), ("date", "<", upper)],
                order_by="date",
                descending=True,
                under=self.user_path,
            )
            return self._decode_all(snapshots, decoder)
        except StoreError as exc:
            if not self._is_recoverable(exc):
                raise ReadError(f"Could not read {collection_id} for {start}..{end}", code=exc.code) from exc
            logger.warning(
                f"Range query on '{collection_id}' rejected ({exc.code}); "
                f"reading {start}..{end} day by day"
            )

        date_keys = [date_key_of_day(day) for day in iter_days(start, end)]
        return self._fan_out(date_keys, collection_id, decoder, limit=None)

    def _get_recent(self, limit: Optional[int], collection_id: str, decoder: Decoder) -> List[Any]:
        if limit is None:
            limit = settings.RECENT_DEFAULT_LIMIT
        if limit <= 0:
            return []

        try:
            return self._query_recent(limit, collection_id, decoder)
        except StoreError as exc:
            if not self._is_recoverable(exc):
                raise ReadError(f"Could not read recent {collection_id}", code=exc.code) from exc
            logger.warning(
                f"Collection group query on '{collection_id}' rejected ({exc.code}); "
                f"falling back to per-date reads"
            )

        try:
            partitions = self.store.list_documents(self.journals_path)
        except StoreError as exc:
            raise ReadError("Could not list date partitions", code=exc.code) from exc

        return self._fan_out([snap.id for snap in partitions], collection_id, decoder, limit=limit)

    def _query_recent(self, limit: int, collection_id: str, decoder: Decoder) -> List[Any]:
        """
        Collection group read of the newest `limit` valid records.

        Malformed records are dropped after the store applies its limit, so
        the query is widened by the number skipped until `limit` records
        decode or the group runs out.
        """
        fetch = limit
        while True:
            snapshots = self.store.query_across_collections(
                collection_id,
                order_by="date",
                descending=True,
                limit=fetch,
                under=self.user_path,
            )
            records = self._decode_all(snapshots, decoder)
            if len(records) >= limit or len(snapshots) < fetch:
                return records[:limit]
            fetch += limit - len(records)

    def _fan_out(
        self,
        date_keys: List[str],
        collection_id: str,
        decoder: Decoder,
        limit: Optional[int],
    ) -> List[Any]:
        """
        Read every partition concurrently and merge once all reads are done.

        A partition whose read fails is logged and left out; it is not retried.
        """
        if not date_keys:
            return []

        workers = min(self.max_workers, len(date_keys))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(self._read_partition, key, collection_id, decoder): key
                for key in date_keys
            }
            wait(futures, return_when=ALL_COMPLETED)

        records: List[Any] = []
        failed = 0
        for future, key in futures.items():
            exc = future.exception()
            if exc is not None:
                failed += 1
                logger.warning(f"Partition {key}/{collection_id} read failed: {exc}")
                continue
            records.extend(future.result())

        records.sort(key=lambda record: (record.timestamp, record.id), reverse=True)
        if limit is not None:
            records = records[:limit]

        logger.info(
            f"Fan-out over {len(date_keys)} partition(s) of '{collection_id}': "
            f"{len(records)} record(s), {failed} failed partition(s)"
        )
        return records
