"""Tests for the SQL-backed document store client."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import DatabaseNotFoundError, StoreError, StoreErrorCode
from app.crud.document_store import CRUDDocumentStore, decode_value, encode_value


T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


class TestPutGet:

    def test_put_then_get_round_trips_nested_timestamps(self, store):
        doc = {"date": T0, "items": [{"at": T0 + timedelta(hours=1)}], "n": 3}
        store.put("users/u/things/a", doc)

        assert store.get("users/u/things/a") == doc

    def test_get_missing_returns_none(self, store):
        assert store.get("users/u/things/missing") is None

    def test_put_overwrites_by_default(self, store):
        store.put("c/a", {"x": 1, "y": 2})
        store.put("c/a", {"x": 5})

        assert store.get("c/a") == {"x": 5}

    def test_put_merge_overlays_fields(self, store):
        store.put("c/a", {"x": 1, "y": 2})
        store.put("c/a", {"x": 5}, merge=True)

        assert store.get("c/a") == {"x": 5, "y": 2}

    @pytest.mark.parametrize("path", ["c", "c/a/b", "c//a", ""])
    def test_put_rejects_non_document_paths(self, store, path):
        with pytest.raises(StoreError) as exc_info:
            store.put(path, {"x": 1})
        assert exc_info.value.code == StoreErrorCode.INVALID_ARGUMENT

    def test_naive_datetime_is_stored_as_utc(self):
        encoded = encode_value({"at": datetime(2024, 1, 1, 12, 0)})
        assert decode_value(encoded)["at"] == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class TestDelete:

    def test_delete_removes_document(self, store):
        store.put("c/a", {"x": 1})
        store.delete("c/a")

        assert store.get("c/a") is None

    def test_delete_missing_raises_not_found(self, store):
        with pytest.raises(DatabaseNotFoundError):
            store.delete("c/nothing")


class TestQuery:

    @pytest.fixture
    def seeded(self, store):
        store.put("c/b", {"n": 2, "date": T0 + timedelta(hours=2)})
        store.put("c/a", {"n": 1, "date": T0 + timedelta(hours=2)})
        store.put("c/c", {"n": 3, "date": T0})
        store.put("c/d", {"n": 4})
        store.put("other/x", {"n": 1, "date": T0})
        return store

    def test_query_is_scoped_to_one_collection(self, seeded):
        ids = [snap.id for snap in seeded.query("c")]
        assert ids == ["a", "b", "c", "d"]

    def test_order_by_excludes_missing_field_and_breaks_ties_by_id(self, seeded):
        ids = [snap.id for snap in seeded.query("c", order_by="date", descending=True)]
        assert ids == ["b", "a", "c"]

        ids = [snap.id for snap in seeded.query("c", order_by="date")]
        assert ids == ["c", "a", "b"]

    def test_filters_and_limit(self, seeded):
        snaps = seeded.query("c", filters=[("n", ">=", 2)], order_by="n", limit=2)
        assert [snap.id for snap in snaps] == ["b", "c"]

    def test_negative_limit_is_invalid(self, seeded):
        with pytest.raises(StoreError) as exc_info:
            seeded.query("c", limit=-1)
        assert exc_info.value.code == StoreErrorCode.INVALID_ARGUMENT

    def test_unknown_operator_is_invalid(self, seeded):
        with pytest.raises(StoreError):
            seeded.query("c", filters=[("n", "~", 1)])

    def test_list_documents_sorted_by_id(self, seeded):
        assert [snap.id for snap in seeded.list_documents("c")] == ["a", "b", "c", "d"]


class TestCollectionGroup:

    @pytest.fixture
    def seeded(self, store):
        store.put("users/u1/days/d1/entries/e1", {"date": T0})
        store.put("users/u1/days/d2/entries/e2", {"date": T0 + timedelta(days=1)})
        store.put("users/u2/days/d1/entries/e3", {"date": T0 + timedelta(days=2)})
        return store

    def test_ordered_query_without_index_fails_precondition(self, seeded):
        with pytest.raises(StoreError) as exc_info:
            seeded.query_across_collections("entries", order_by="date")
        assert exc_info.value.code == StoreErrorCode.FAILED_PRECONDITION

    def test_plain_query_needs_no_index(self, seeded):
        snaps = seeded.query_across_collections("entries")
        assert {snap.id for snap in snaps} == {"e1", "e2", "e3"}

    def test_create_index_enables_ordering(self, seeded):
        seeded.create_index("entries")
        snaps = seeded.query_across_collections("entries", order_by="date", descending=True)

        assert [snap.id for snap in snaps] == ["e3", "e2", "e1"]

    def test_under_restricts_to_prefix(self, seeded):
        snaps = seeded.query_across_collections("entries", under="users/u1")
        assert {snap.id for snap in snaps} == {"e1", "e2"}

    def test_under_does_not_match_sibling_prefix(self, store):
        store.put("users/u1/days/d1/entries/e1", {"date": T0})
        store.put("users/u10/days/d1/entries/e9", {"date": T0})

        snaps = store.query_across_collections("entries", under="users/u1")
        assert [snap.id for snap in snaps] == ["e1"]

    def test_group_and_prefix_are_selected_in_sql(self, seeded, monkeypatch):
        seeded.put("users/u1/days/d1/notes/n1", {"date": T0})
        seeded.create_index("entries")
        decoded = []
        original = CRUDDocumentStore._snapshot

        def recording(row):
            decoded.append(row.path)
            return original(row)

        monkeypatch.setattr(CRUDDocumentStore, "_snapshot", staticmethod(recording))

        snaps = seeded.query_across_collections("entries", order_by="date", limit=1, under="users/u1")

        assert [snap.id for snap in snaps] == ["e1"]
        assert sorted(decoded) == ["users/u1/days/d1/entries/e1", "users/u1/days/d2/entries/e2"]


class FailingSession:
    def __init__(self, message):
        self.message = message

    def _fail(self, *args, **kwargs):
        raise OperationalError("SELECT", {}, Exception(self.message))

    query = get = add = commit = _fail

    def rollback(self):
        pass

    def close(self):
        pass


class TestDatabaseFailures:

    @pytest.mark.parametrize("message, code", [
        ("database is locked", StoreErrorCode.UNAVAILABLE),
        ("database or disk is full", StoreErrorCode.RESOURCE_EXHAUSTED),
        ("attempt to write a readonly database", StoreErrorCode.PERMISSION_DENIED),
        ("permission denied for table documents", StoreErrorCode.PERMISSION_DENIED),
    ])
    def test_database_error_maps_to_store_code(self, message, code):
        store = CRUDDocumentStore(lambda: FailingSession(message))

        with pytest.raises(StoreError) as exc_info:
            store.query_across_collections("entries")
        assert exc_info.value.code == code
        assert isinstance(exc_info.value.__cause__, OperationalError)


class TestMixedTypeOrdering:

    def test_values_order_by_type_then_value(self, store):
        store.put("c/s", {"v": "yesterday"})
        store.put("c/t", {"v": T0})
        store.put("c/n", {"v": 10})
        store.put("c/z", {"v": None})

        assert [snap.id for snap in store.query("c", order_by="v")] == ["z", "n", "t", "s"]

    def test_filter_skips_incomparable_values(self, store):
        store.put("c/s", {"v": "yesterday"})
        store.put("c/t", {"v": T0})

        snaps = store.query("c", filters=[("v", ">=", T0 - timedelta(days=1))])
        assert [snap.id for snap in snaps] == ["t"]
