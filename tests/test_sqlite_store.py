import pytest

from course_planner.batch import BulkCreator
from course_planner.db import SQLiteStore
from course_planner.errors import ConditionalWriteFailed, StoreUnavailableError
from course_planner.identity import Identity
from course_planner.schemas import TodoCreate
from course_planner.stores import ListQuery, _store_for


@pytest.fixture
def sqlite_store(tmp_path):
    return SQLiteStore(str(tmp_path / "nested" / "planner.db"))


class TestSQLiteStore:
    def test_put_and_get_round_trip(self, sqlite_store):
        record = {"id": "c1", "code": "CS101", "credit": 3, "created_at": "2030-01-01T00:00:00.000Z"}
        sqlite_store.put_if_absent("Course", record)
        assert sqlite_store.get("Course", "c1") == record
        assert sqlite_store.get("Course", "missing") is None
        # Same id under another model is a different key
        assert sqlite_store.get("Category", "c1") is None

    def test_conditional_write(self, sqlite_store):
        sqlite_store.put_if_absent("Course", {"id": "c1", "name": "first"})
        with pytest.raises(ConditionalWriteFailed) as info:
            sqlite_store.put_if_absent("Course", {"id": "c1", "name": "second"})
        assert info.value.record_id == "c1"
        assert sqlite_store.get("Course", "c1")["name"] == "first"

    def test_list_filters_and_paginates(self, sqlite_store):
        for i in range(5):
            sqlite_store.put_if_absent(
                "Todo",
                {
                    "id": f"t{i}",
                    "title": f"Task {i}",
                    "owner": "alice" if i % 2 == 0 else "bob",
                    "created_at": f"2030-01-0{i + 1}T00:00:00.000Z",
                },
            )

        items, total = sqlite_store.list("Todo", ListQuery(filters={"owner": "alice"}))
        assert total == 3
        assert [t["id"] for t in items] == ["t0", "t2", "t4"]

        page, total_all = sqlite_store.list("Todo", ListQuery(limit=2, offset=1, sort="-created_at"))
        assert total_all == 5
        assert [t["id"] for t in page] == ["t3", "t2"]

    def test_null_filter(self, sqlite_store):
        sqlite_store.put_if_absent("Todo", {"id": "a", "owner": None})
        sqlite_store.put_if_absent("Todo", {"id": "b", "owner": "bob"})
        items, total = sqlite_store.list("Todo", ListQuery(filters={"owner": None}))
        assert total == 1
        assert items[0]["id"] == "a"

    def test_rejects_unsafe_filter_names(self, sqlite_store):
        with pytest.raises(ValueError):
            sqlite_store.list("Todo", ListQuery(filters={"owner') OR 1=1 --": "x"}))

    def test_unopenable_database_is_unavailable(self, tmp_path):
        store = SQLiteStore(str(tmp_path / "planner.db"))
        # Point the store at a directory: sqlite cannot open it as a database file.
        store._db_path = str(tmp_path)
        with pytest.raises(StoreUnavailableError):
            store.get("Todo", "x")


class TestBulkCreateOnSQLite:
    def test_batch_persists_every_item(self, sqlite_store):
        creator = BulkCreator(sqlite_store, max_workers=4)
        result = creator.create_batch(
            [TodoCreate(title=f"T{i}") for i in range(10)], Identity(subject="alice", issuer="userPool")
        )
        assert result.failed_count == 0
        _, total = sqlite_store.list("Todo", ListQuery(filters={"owner": "alice"}))
        assert total == 10


def test_store_factory_selects_sqlite(tmp_path):
    store = _store_for("sqlite", str(tmp_path / "factory.db"))
    assert isinstance(store, SQLiteStore)
    assert _store_for("sqlite", str(tmp_path / "factory.db")) is store
