"""
Tests for the key-value backends and the PersistentStore adapter.

No network; file tests use pytest's tmp_path.
"""

import json

import pytest
from datetime import date
from decimal import Decimal

from spendsmart.audit import AuditLogger
from spendsmart.models.audit import AuditEventType
from spendsmart.models.transaction import Budget, Item, Theme, Transaction, User
from spendsmart.services.storage import (
    BUDGETS_KEY,
    STORE_KEYS,
    THEME_KEY,
    TRANSACTIONS_KEY,
    USER_KEY,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    PersistentStore,
    StorageError,
    UnknownKeyError,
)


def sample_transaction() -> Transaction:
    return Transaction(
        id="t1",
        transaction_date=date(2024, 5, 4),
        store="Kroger",
        total_amount=Decimal("12.34"),
        category="Groceries",
        items=[Item(name="Milk", quantity=Decimal("2"), unit_price=Decimal("1.5"), total_price=Decimal("3"))],
    )


@pytest.fixture
def backend():
    return InMemoryKeyValueStore()


@pytest.fixture
def store(backend):
    return PersistentStore(backend)


class TestDefaults:
    """Tests for missing keys."""

    def test_missing_keys_return_defaults(self, store):
        """Lists default to [], scalars to None."""
        assert store.load(TRANSACTIONS_KEY) == []
        assert store.load(BUDGETS_KEY) == []
        assert store.load(USER_KEY) is None
        assert store.load(THEME_KEY) is None

    def test_unknown_key(self, store):
        """Only the four storage keys are accepted."""
        with pytest.raises(UnknownKeyError):
            store.load("somethingElse")
        with pytest.raises(UnknownKeyError):
            store.save("somethingElse", [])


class TestRoundTrip:
    """Tests for save/load."""

    def test_transactions_round_trip(self, store):
        """Transactions come back equal."""
        store.save_transactions([sample_transaction()])
        assert store.load_transactions() == [sample_transaction()]

    def test_wire_format(self, store, backend):
        """Values are stored as camelCase JSON under the fixed keys."""
        store.save_transactions([sample_transaction()])
        store.save_budgets([Budget(category="Dining", limit=Decimal("200"))])
        store.save_user(User(id="1", name="sam", email="sam@example.com"))
        store.save_theme(Theme.DARK)

        stored = json.loads(backend.get_item("spendSmart_transactions"))
        assert stored[0]["date"] == "2024-05-04"
        assert stored[0]["totalAmount"] == 12.34
        assert stored[0]["isRecurring"] is False
        assert stored[0]["items"][0]["unitPrice"] == 1.5
        assert json.loads(backend.get_item("spendSmart_budgets")) == [{"category": "Dining", "limit": 200}]
        assert json.loads(backend.get_item("spendSmart_user"))["email"] == "sam@example.com"
        assert backend.get_item("theme") == "dark"

    def test_save_of_load_is_a_no_op(self, store, backend):
        """save(key, load(key)) leaves every key's stored text unchanged."""
        store.save_transactions([sample_transaction()])
        store.save_budgets([Budget(category="Dining", limit=Decimal("99.5"))])
        store.save_user(User(id="1", name="sam", email="sam@example.com"))
        store.save_theme(Theme.LIGHT)

        for key in STORE_KEYS:
            before = backend.get_item(key)
            store.save(key, store.load(key))
            assert backend.get_item(key) == before

    def test_reads_values_written_by_web_client(self, store, backend):
        """Data written by the browser version loads unchanged."""
        web_text = json.dumps([{
            "id": "k3j2h1x",
            "date": "2024-02-01",
            "store": "Netflix",
            "totalAmount": 15.99,
            "category": "Entertainment",
            "items": [{"name": "Plan", "quantity": 1, "unitPrice": 15.99, "totalPrice": 15.99}],
            "type": "EXPENSE",
            "isRecurring": True,
            "source": "MANUAL",
        }], separators=(",", ":"))
        backend.set_item(TRANSACTIONS_KEY, web_text)
        [transaction] = store.load_transactions()
        assert transaction.id == "k3j2h1x"
        assert transaction.total_amount == Decimal("15.99")
        assert transaction.is_recurring is True

        store.save(TRANSACTIONS_KEY, store.load(TRANSACTIONS_KEY))
        assert backend.get_item(TRANSACTIONS_KEY) == web_text

    def test_save_none(self, store, backend):
        """None clears scalar keys and empties list keys."""
        store.save_user(User(id="1", name="a", email="a@b.c"))
        store.clear_user()
        assert backend.get_item(USER_KEY) is None
        store.save(TRANSACTIONS_KEY, None)
        assert backend.get_item(TRANSACTIONS_KEY) == "[]"


class TestCorruption:
    """Tests for unreadable stored values."""

    @pytest.mark.parametrize("key,raw", [
        (TRANSACTIONS_KEY, "{not json"),
        (TRANSACTIONS_KEY, '{"an": "object"}'),
        (BUDGETS_KEY, '[{"category": "", "limit": 5}]'),
        (USER_KEY, '"just a string"'),
        (THEME_KEY, "purple"),
    ])
    def test_corrupt_value_degrades_to_default(self, backend, key, raw):
        """Corrupt values load as the default instead of raising."""
        backend.set_item(key, raw)
        store = PersistentStore(backend)
        assert store.load(key) == PersistentStore.default_for(key)

    def test_corruption_is_audited(self, backend):
        """A corrupt value is reported to the audit log."""
        audit_logger = AuditLogger()
        backend.set_item(TRANSACTIONS_KEY, "garbage")
        PersistentStore(backend, audit_logger=audit_logger).load(TRANSACTIONS_KEY)

        [event] = audit_logger.get_recent_events()
        assert event.event_type == AuditEventType.STORAGE_CORRUPT
        assert event.entity_id == TRANSACTIONS_KEY

    def test_quoted_theme_is_accepted(self, backend):
        """A JSON-quoted theme string still loads."""
        backend.set_item(THEME_KEY, '"dark"')
        assert PersistentStore(backend).load_theme() == Theme.DARK

    def test_bad_record_does_not_hide_the_rest(self, backend):
        """Only the invalid records of a list are dropped."""
        audit_logger = AuditLogger()
        backend.set_item(TRANSACTIONS_KEY, json.dumps([
            {"id": "a", "date": "2024-01-01", "store": "Kroger", "totalAmount": 5},
            {"id": "b", "date": "2024-01-02", "store": "Shell", "totalAmount": 40},
            {"id": "c", "date": "2024-01-03", "store": "Cafe", "totalAmount": None},
            {"id": "d", "date": "01/04/2024", "store": "Cafe", "totalAmount": 3},
        ]))
        store = PersistentStore(backend, audit_logger=audit_logger)

        assert [t.id for t in store.load_transactions()] == ["a", "b"]
        assert [e.entity_id for e in audit_logger.get_recent_events()] == [
            f"{TRANSACTIONS_KEY}[3]",
            f"{TRANSACTIONS_KEY}[2]",
        ]

    def test_long_item_names_still_load(self, backend):
        """Stored item names are not length-checked on load."""
        backend.set_item(TRANSACTIONS_KEY, json.dumps([
            {"id": "a", "date": "2024-01-01", "items": [{"name": "Z" * 300}]},
        ]))
        [transaction] = PersistentStore(backend).load_transactions()
        assert transaction.items[0].name == "Z" * 300


class TestJsonFileBackend:
    """Tests for the JSON file backend."""

    def test_persists_across_instances(self, tmp_path):
        """Values written by one instance are read by the next."""
        path = tmp_path / "nested" / "store.json"
        PersistentStore(JsonFileKeyValueStore(path)).save_transactions([sample_transaction()])

        reopened = PersistentStore(JsonFileKeyValueStore(path))
        assert reopened.load_transactions() == [sample_transaction()]
        assert TRANSACTIONS_KEY in json.loads(path.read_text(encoding="utf-8"))

    def test_missing_file_is_empty(self, tmp_path):
        """A file that does not exist yet behaves like an empty store."""
        backend = JsonFileKeyValueStore(tmp_path / "absent.json")
        assert backend.keys() == []
        assert backend.get_item(USER_KEY) is None

    def test_remove_item(self, tmp_path):
        """Removed keys disappear from the file."""
        backend = JsonFileKeyValueStore(tmp_path / "store.json")
        backend.set_item(THEME_KEY, "dark")
        backend.remove_item(THEME_KEY)
        backend.remove_item(THEME_KEY)
        assert JsonFileKeyValueStore(tmp_path / "store.json").keys() == []

    def test_corrupt_file_raises_storage_error(self, tmp_path):
        """The backend reports an unreadable file as StorageError."""
        path = tmp_path / "store.json"
        path.write_text("[1, 2", encoding="utf-8")
        with pytest.raises(StorageError):
            JsonFileKeyValueStore(path).get_item(USER_KEY)

    def test_corrupt_file_degrades_in_adapter(self, tmp_path):
        """The adapter turns a corrupt file into defaults."""
        path = tmp_path / "store.json"
        path.write_text("not json at all", encoding="utf-8")
        store = PersistentStore(JsonFileKeyValueStore(path))
        assert store.load_transactions() == []
        assert store.load_user() is None

    def test_corrupt_file_is_replaced_on_write(self, tmp_path):
        """A write moves the unreadable file aside and succeeds."""
        path = tmp_path / "store.json"
        path.write_text("{not json", encoding="utf-8")
        backend = JsonFileKeyValueStore(path)

        backend.set_item(THEME_KEY, "dark")

        assert json.loads(path.read_text(encoding="utf-8")) == {THEME_KEY: "dark"}
        assert (tmp_path / "store.json.bak").read_text(encoding="utf-8") == "{not json"
        assert JsonFileKeyValueStore(path).get_item(THEME_KEY) == "dark"

    def test_adapter_saves_over_corrupt_file(self, tmp_path):
        """After degrading to defaults, later saves still persist."""
        path = tmp_path / "store.json"
        path.write_text("{not json", encoding="utf-8")
        store = PersistentStore(JsonFileKeyValueStore(path))
        assert store.load_transactions() == []

        store.save_transactions([sample_transaction()])

        reopened = PersistentStore(JsonFileKeyValueStore(path))
        assert reopened.load_transactions() == [sample_transaction()]

    def test_no_temp_files_left_behind(self, tmp_path):
        """Atomic writes clean up after themselves."""
        backend = JsonFileKeyValueStore(tmp_path / "store.json")
        backend.set_item(USER_KEY, "{}")
        backend.set_item(THEME_KEY, "light")
        assert [p.name for p in tmp_path.iterdir()] == ["store.json"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
