"""
Persistent Store Adapter

Reads and writes whole collections (user, transactions, budgets, theme)
under fixed keys. The key names and value formats match the
browser client's local storage so both can share a data dump.

DESIGN DECISION: load() never raises for bad data. A missing or corrupt
value degrades to the empty default and the condition is logged. In the
list keys, records that fail validation are dropped one by one and the
rest of the list still loads.
save() always replaces the previous value in full; there are no partial
updates, migrations or versions.
"""

from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError

from spendsmart.audit.logger import AuditLogger, get_logger
from spendsmart.models.transaction import Budget, Theme, Transaction, User
from spendsmart.services.storage.interface import (
    KeyValueStoreInterface,
    StorageError,
    UnknownKeyError,
)


USER_KEY = "spendSmart_user"
TRANSACTIONS_KEY = "spendSmart_transactions"
BUDGETS_KEY = "spendSmart_budgets"
THEME_KEY = "theme"

STORE_KEYS = (USER_KEY, TRANSACTIONS_KEY, BUDGETS_KEY, THEME_KEY)

_ADAPTERS: dict[str, TypeAdapter] = {
    USER_KEY: TypeAdapter(User),
    TRANSACTIONS_KEY: TypeAdapter(list[Transaction]),
    BUDGETS_KEY: TypeAdapter(list[Budget]),
}

_LIST_KEYS = (TRANSACTIONS_KEY, BUDGETS_KEY)

# List keys are validated record by record
_RECORD_ADAPTERS: dict[str, TypeAdapter] = {
    TRANSACTIONS_KEY: TypeAdapter(Transaction),
    BUDGETS_KEY: TypeAdapter(Budget),
}

_RAW_LIST = TypeAdapter(list[Any])


class PersistentStore:
    """
    Typed access to the four storage keys.

    All reads and writes are synchronous. Values are serialized as
    camelCase JSON (the theme as a bare "light"/"dark" string).
    """

    def __init__(
        self,
        backend: KeyValueStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._backend = backend
        self._audit_logger = audit_logger
        self._logger = get_logger(__name__)

    @staticmethod
    def default_for(key: str) -> Any:
        """Empty default for a key: [] for lists, None for scalars."""
        if key in _LIST_KEYS:
            return []
        return None

    def _check_key(self, key: str) -> None:
        if key not in STORE_KEYS:
            raise UnknownKeyError(f"Unknown storage key: {key}")

    def _report_corrupt(self, key: str, error: Exception) -> None:
        self._logger.warning("storage_value_corrupt", key=key, error=str(error))
        if self._audit_logger:
            self._audit_logger.log_storage_corrupt(key, str(error))

    def _decode_list(self, key: str, raw: str) -> list:
        """
        Decode a list key, dropping only the records that fail validation.

        A single bad record (e.g. a null amount) must not hide the rest
        of the history, or the next save would overwrite it.
        """
        records = []
        adapter = _RECORD_ADAPTERS[key]
        for index, entry in enumerate(_RAW_LIST.validate_json(raw)):
            try:
                records.append(adapter.validate_python(entry))
            except ValidationError as e:
                self._logger.warning(
                    "storage_record_dropped",
                    key=key,
                    index=index,
                    error=str(e),
                )
                if self._audit_logger:
                    self._audit_logger.log_storage_corrupt(f"{key}[{index}]", str(e))
        return records

    def _decode(self, key: str, raw: str) -> Any:
        if key == THEME_KEY:
            return Theme(raw.strip().strip('"'))
        if key in _LIST_KEYS:
            return self._decode_list(key, raw)
        return _ADAPTERS[key].validate_json(raw)

    def _encode(self, key: str, value: Any) -> str:
        if key == THEME_KEY:
            return Theme(value).value
        return _ADAPTERS[key].dump_json(
            value,
            by_alias=True,
            exclude_none=True,
        ).decode("utf-8")

    def load(self, key: str) -> Any:
        """
        Load the value stored under a key.

        Returns:
            The decoded value, or the key's default if it is absent,
            unreadable or fails validation.

        Raises:
            UnknownKeyError: If key is not a recognized storage key
        """
        self._check_key(key)

        try:
            raw = self._backend.get_item(key)
        except StorageError as e:
            self._report_corrupt(key, e)
            return self.default_for(key)

        if raw is None:
            return self.default_for(key)

        try:
            return self._decode(key, raw)
        except (ValidationError, ValueError) as e:
            self._report_corrupt(key, e)
            return self.default_for(key)

    def save(self, key: str, value: Any) -> None:
        """
        Replace the value stored under a key.

        Saving None removes a scalar key (user, theme).

        Raises:
            UnknownKeyError: If key is not a recognized storage key
            StorageError: If the backend write fails
        """
        self._check_key(key)

        if value is None:
            if key in _LIST_KEYS:
                value = []
            else:
                self._backend.remove_item(key)
                return

        self._backend.set_item(key, self._encode(key, value))

    # Typed helpers

    def load_user(self) -> Optional[User]:
        return self.load(USER_KEY)

    def save_user(self, user: User) -> None:
        self.save(USER_KEY, user)

    def clear_user(self) -> None:
        self.save(USER_KEY, None)

    def load_transactions(self) -> list[Transaction]:
        return self.load(TRANSACTIONS_KEY)

    def save_transactions(self, transactions: list[Transaction]) -> None:
        self.save(TRANSACTIONS_KEY, list(transactions))

    def load_budgets(self) -> list[Budget]:
        return self.load(BUDGETS_KEY)

    def save_budgets(self, budgets: list[Budget]) -> None:
        self.save(BUDGETS_KEY, list(budgets))

    def load_theme(self) -> Optional[Theme]:
        return self.load(THEME_KEY)

    def save_theme(self, theme: Theme) -> None:
        self.save(THEME_KEY, theme)
