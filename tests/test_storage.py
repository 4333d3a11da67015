"""
Tests for storage backends and transaction support
"""

import pytest

from escrow_lending.storage import (
    InMemoryStorage, SQLiteStorage, StorageInterface, create_storage
)


@pytest.fixture(params=["memory", "sqlite"])
def storage(request, tmp_path):
    if request.param == "memory":
        backend = InMemoryStorage()
    else:
        backend = SQLiteStorage(tmp_path / "escrow.db")
    yield backend
    backend.close()


class TestStorageBackends:
    """Behaviour shared by every backend"""

    def test_basic_operations(self, storage):
        """Test save, load, exists, find and count"""
        storage.save("loans", "0", {"id": 0, "borrower": "ST2"})
        storage.save("loans", "1", {"id": 1, "borrower": "ST3"})

        assert storage.load("loans", "0") == {"id": 0, "borrower": "ST2"}
        assert storage.load("loans", "9") is None
        assert storage.exists("loans", "1")
        assert not storage.exists("loans", "9")
        assert storage.count("loans") == 2
        assert storage.find("loans", {"borrower": "ST3"}) == [{"id": 1, "borrower": "ST3"}]

    def test_update_keeps_insertion_order(self, storage):
        """Test overwriting a record does not move it in load_all"""
        storage.save("escrows", "0", {"loan_id": 0, "released": False})
        storage.save("escrows", "1", {"loan_id": 1, "released": False})
        storage.save("escrows", "0", {"loan_id": 0, "released": True})

        assert storage.load_all("escrows") == [
            {"loan_id": 0, "released": True},
            {"loan_id": 1, "released": False},
        ]

    def test_loaded_records_are_copies(self, storage):
        """Test mutating a loaded record does not touch storage"""
        storage.save("loans", "0", {"id": 0, "tags": ["a"]})
        loaded = storage.load("loans", "0")
        loaded["tags"].append("b")

        assert storage.load("loans", "0") == {"id": 0, "tags": ["a"]}

    def test_atomic_commit(self, storage):
        """Test writes inside a committed transaction persist"""
        with storage.atomic():
            storage.save("loans", "0", {"id": 0})
            storage.save("escrows", "0", {"loan_id": 0})

        assert storage.exists("loans", "0")
        assert storage.exists("escrows", "0")

    def test_atomic_rollback(self, storage):
        """Test an exception discards every write in the transaction"""
        storage.save("loans", "0", {"id": 0, "impact_verified": False})

        with pytest.raises(RuntimeError):
            with storage.atomic():
                storage.save("loans", "0", {"id": 0, "impact_verified": True})
                storage.save("loans", "1", {"id": 1})
                raise RuntimeError("transfer refused")

        assert storage.load("loans", "0") == {"id": 0, "impact_verified": False}
        assert not storage.exists("loans", "1")
        assert storage.count("loans") == 1

    def test_nested_atomic_joins_outer(self, storage):
        """Test an inner block is undone when the outer block fails"""
        with pytest.raises(ValueError):
            with storage.atomic():
                with storage.atomic():
                    storage.save("loans", "0", {"id": 0})
                raise ValueError("outer failure")

        assert not storage.exists("loans", "0")


class TestSQLitePersistence:
    """Test SQLite durability across connections"""

    def test_reopen(self, tmp_path):
        path = tmp_path / "escrow.db"
        first = SQLiteStorage(path)
        first.save("counters", "next_loan_id", {"value": 3})
        first.close()

        second = SQLiteStorage(path)
        assert second.load("counters", "next_loan_id") == {"value": 3}
        second.close()


class TestCreateStorage:
    """Test backend selection from a database URL"""

    def test_memory_url(self):
        assert isinstance(create_storage("memory://"), InMemoryStorage)

    def test_sqlite_url(self, tmp_path):
        backend = create_storage(f"sqlite:///{tmp_path / 'escrow.db'}")
        assert isinstance(backend, SQLiteStorage)
        assert isinstance(backend, StorageInterface)
        backend.close()

    def test_sqlite_in_memory_url(self):
        backend = create_storage("sqlite://")
        assert backend.db_path == ":memory:"
        backend.close()

    def test_unsupported_url(self):
        with pytest.raises(ValueError, match="Unsupported database URL"):
            create_storage("postgresql://localhost/escrow")
