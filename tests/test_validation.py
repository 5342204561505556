"""
Tests for edit-boundary validation.
"""

import pytest
from datetime import date
from decimal import Decimal

from spendsmart.models.transaction import ITEM_NAME_MAX_LENGTH, Item, Transaction
from spendsmart.validation import (
    EditValidationError,
    build_budget,
    new_item,
    parse_amount,
    parse_date,
    parse_flag,
    parse_quantity,
    update_item,
    update_transaction,
    validate_category,
)


class TestParsers:
    """Tests for the value parsers."""

    @pytest.mark.parametrize("raw,expected", [
        ("12.50", Decimal("12.50")),
        (" $1,234.5 ", Decimal("1234.5")),
        (7, Decimal("7")),
        (Decimal("0"), Decimal("0")),
    ])
    def test_parse_amount(self, raw, expected):
        """Common money spellings parse to Decimal."""
        assert parse_amount(raw) == expected

    @pytest.mark.parametrize("raw", ["abc", "", None, "NaN", "inf", True])
    def test_parse_amount_rejects_garbage(self, raw):
        """Non-numeric, NaN and infinite input is refused."""
        with pytest.raises(EditValidationError):
            parse_amount(raw)

    def test_negative_amount(self):
        """Negative amounts need explicit permission."""
        with pytest.raises(EditValidationError) as exc_info:
            parse_amount("-5", field="total_amount")
        assert exc_info.value.field == "total_amount"
        assert parse_amount("-5", allow_negative=True) == Decimal("-5")

    def test_parse_quantity(self):
        """Quantities may be fractional but not negative."""
        assert parse_quantity("1.5") == Decimal("1.5")
        with pytest.raises(EditValidationError):
            parse_quantity("-1")

    def test_parse_date(self):
        """Dates must be ISO formatted."""
        assert parse_date("2024-03-01") == date(2024, 3, 1)
        assert parse_date(date(2024, 1, 2)) == date(2024, 1, 2)
        with pytest.raises(EditValidationError):
            parse_date("03/01/2024")

    def test_validate_category(self):
        """Categories are trimmed and must not be blank."""
        assert validate_category("  Dining ") == "Dining"
        with pytest.raises(EditValidationError):
            validate_category("  ")

    def test_validation_error_is_value_error(self):
        """Callers catching ValueError also catch validation errors."""
        assert issubclass(EditValidationError, ValueError)


class TestItemEdits:
    """Tests for update_item."""

    def test_quantity_edit_recomputes_total(self):
        """Changing quantity updates the line total."""
        item = Item(name="Milk", quantity=Decimal("1"), unit_price=Decimal("2.5"), total_price=Decimal("2.5"))
        updated = update_item(item, "quantity", "3")
        assert updated.total_price == Decimal("7.5")
        assert item.quantity == Decimal("1")

    def test_unit_price_edit_recomputes_total(self):
        """Changing unit price updates the line total."""
        item = Item(name="Milk", quantity=Decimal("2"), unit_price=Decimal("1"), total_price=Decimal("2"))
        assert update_item(item, "unit_price", "1.25").total_price == Decimal("2.50")

    def test_total_edit_does_not_touch_price(self):
        """Editing the total directly leaves quantity and price alone."""
        item = Item(name="Milk", quantity=Decimal("2"), unit_price=Decimal("1"), total_price=Decimal("2"))
        updated = update_item(item, "total_price", "5")
        assert updated.total_price == Decimal("5")
        assert updated.unit_price == Decimal("1")

    def test_bad_value_rejected(self):
        """Non-numeric input never reaches the item."""
        with pytest.raises(EditValidationError):
            update_item(Item(name="Milk"), "quantity", "lots")

    def test_unknown_field(self):
        """Only known fields can be edited."""
        with pytest.raises(EditValidationError):
            update_item(Item(name="Milk"), "colour", "red")

    def test_long_name_rejected(self):
        """Names over the limit are a validation error, not a model error."""
        item = Item(name="Milk")
        assert update_item(item, "name", "Y" * ITEM_NAME_MAX_LENGTH).name == "Y" * ITEM_NAME_MAX_LENGTH
        with pytest.raises(EditValidationError) as exc_info:
            update_item(item, "name", "Y" * (ITEM_NAME_MAX_LENGTH + 1))
        assert exc_info.value.field == "name"


class TestTransactionEdits:
    """Tests for update_transaction and helpers."""

    def test_field_edits(self):
        """Each editable field is parsed and applied."""
        transaction = Transaction(id="t1")
        transaction = update_transaction(transaction, "store", "Kroger")
        transaction = update_transaction(transaction, "date", "2024-02-29")
        transaction = update_transaction(transaction, "total_amount", "19.99")
        transaction = update_transaction(transaction, "category", "Groceries")
        transaction = update_transaction(transaction, "is_recurring", True)

        assert transaction.id == "t1"
        assert transaction.store == "Kroger"
        assert transaction.transaction_date == date(2024, 2, 29)
        assert transaction.total_amount == Decimal("19.99")
        assert transaction.category == "Groceries"
        assert transaction.is_recurring is True

    def test_nan_amount_rejected(self):
        """NaN never becomes a transaction total."""
        with pytest.raises(EditValidationError):
            update_transaction(Transaction(), "total_amount", "nan")

    @pytest.mark.parametrize("raw,expected", [
        ("false", False),
        ("False ", False),
        ("0", False),
        ("", False),
        ("true", True),
        ("yes", True),
        (1, True),
        (0, False),
        (None, False),
    ])
    def test_recurring_flag_parsing(self, raw, expected):
        """Checkbox strings are parsed, so "false" stays False."""
        assert update_transaction(Transaction(), "is_recurring", raw).is_recurring is expected
        assert parse_flag("is_recurring", raw) is expected

    def test_recurring_flag_rejects_garbage(self):
        """Unrecognized words are rejected."""
        with pytest.raises(EditValidationError):
            update_transaction(Transaction(), "is_recurring", "sometimes")

    def test_new_item_defaults(self):
        """New items start as one "New Item" in the transaction's category."""
        item = new_item(Transaction(category="Dining"))
        assert item.name == "New Item"
        assert item.quantity == Decimal("1")
        assert item.total_price == Decimal("0")
        assert item.category == "Dining"

    def test_new_item_falls_back_to_other(self):
        """Without a transaction category the item is Other."""
        assert new_item(Transaction(category="")).category == "Other"

    def test_build_budget(self):
        """The budget form is validated into a Budget."""
        budget = build_budget(" Travel ", "500")
        assert budget.category == "Travel"
        assert budget.limit == Decimal("500")
        with pytest.raises(EditValidationError):
            build_budget("Travel", "five hundred")

    def test_build_budget_rejects_long_category(self):
        """Overlong categories are a validation error."""
        with pytest.raises(EditValidationError):
            build_budget("C" * 101, "10")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
