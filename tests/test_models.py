"""
Tests for SpendSmart

Test strategy:
1. Unit tests for individual components (models, aggregations, inference)
2. Integration tests for flows (with mocked Gemini models)
3. No real API calls in tests (use mocks)
"""

import json

import pytest
from datetime import date
from decimal import Decimal

from pydantic import ValidationError

from spendsmart.models.transaction import (
    SUGGESTED_CATEGORIES,
    Budget,
    Category,
    Citation,
    Item,
    RawExtractedTransaction,
    ReceiptUpload,
    Theme,
    Transaction,
    TransactionSource,
    TransactionType,
)
from spendsmart.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestTransactionModels:
    """Tests for stored transaction models."""

    def test_transaction_defaults(self):
        """A bare transaction is a manual, non-recurring expense dated today."""
        transaction = Transaction()
        assert transaction.id
        assert transaction.transaction_date == date.today()
        assert transaction.total_amount == Decimal("0")
        assert transaction.category == "Other"
        assert transaction.type == TransactionType.EXPENSE
        assert transaction.source == TransactionSource.MANUAL
        assert transaction.is_recurring is False

    def test_transaction_ids_are_unique(self):
        """Each new transaction gets its own id."""
        assert Transaction().id != Transaction().id

    def test_transaction_reads_camel_case(self):
        """Stored JSON uses camelCase keys and a "date" field."""
        transaction = Transaction.model_validate({
            "id": "abc",
            "date": "2024-03-05",
            "store": "Kroger",
            "totalAmount": 12.5,
            "category": "Groceries",
            "items": [{"name": "Milk", "quantity": 2, "unitPrice": 2.5, "totalPrice": 5}],
            "type": "EXPENSE",
            "isRecurring": False,
            "source": "RECEIPT",
        })
        assert transaction.transaction_date == date(2024, 3, 5)
        assert transaction.total_amount == Decimal("12.5")
        assert transaction.items[0].unit_price == Decimal("2.5")
        assert transaction.source == TransactionSource.RECEIPT

    def test_transaction_json_uses_numbers(self):
        """Money is written as plain JSON numbers, ints when integral."""
        transaction = Transaction(
            id="t1",
            transaction_date=date(2024, 1, 1),
            store="Netflix",
            total_amount=Decimal("15"),
            items=[Item(name="Plan", quantity=Decimal("1"), unit_price=Decimal("15.99"), total_price=Decimal("15.99"))],
        )
        data = json.loads(transaction.model_dump_json(by_alias=True, exclude_none=True))
        assert data["date"] == "2024-01-01"
        assert data["totalAmount"] == 15
        assert isinstance(data["totalAmount"], int)
        assert data["items"][0]["unitPrice"] == 15.99
        assert "receiptImage" not in data

    def test_month_key(self):
        """Month bucket is the YYYY-MM prefix of the date."""
        transaction = Transaction(transaction_date=date(2024, 7, 31))
        assert transaction.month_key == "2024-07"

    def test_recalculate_total(self):
        """Total can be reset to the sum of item totals on request."""
        transaction = Transaction(
            total_amount=Decimal("99"),
            items=[
                Item(name="A", total_price=Decimal("1.50")),
                Item(name="B", total_price=Decimal("2.25")),
            ],
        )
        assert transaction.items_total == Decimal("3.75")
        assert transaction.recalculate_total().total_amount == Decimal("3.75")
        # The original is untouched
        assert transaction.total_amount == Decimal("99")

    def test_item_recomputed_total(self):
        """Item total follows quantity * unit price when recomputed."""
        item = Item(name="Eggs", quantity=Decimal("3"), unit_price=Decimal("0.5"), total_price=Decimal("0"))
        assert item.with_recomputed_total().total_price == Decimal("1.5")


class TestBudgetModel:
    """Tests for the Budget model."""

    def test_budget_matches_case_insensitively(self):
        """Budget categories compare without case."""
        budget = Budget(category="Groceries", limit=Decimal("300"))
        assert budget.matches("groceries")
        assert budget.matches("  GROCERIES ")
        assert not budget.matches("Dining")

    def test_budget_requires_category(self):
        """A blank category is rejected."""
        with pytest.raises(ValidationError):
            Budget(category="   ", limit=Decimal("10"))


class TestRawExtractedTransaction:
    """Tests for the lenient AI boundary model."""

    def test_bad_values_become_none(self):
        """Values of the wrong shape are dropped instead of raising."""
        raw = RawExtractedTransaction.model_validate({
            "store": {"nested": True},
            "date": "not a date",
            "totalAmount": "abc",
            "isRecurring": "yes",
            "items": ["junk", {"name": "Milk", "totalPrice": "$3.49"}],
        })
        assert raw.store is None
        assert raw.transaction_date is None
        assert raw.total_amount is None
        assert raw.is_recurring is True
        assert len(raw.items) == 1
        assert raw.items[0].total_price == Decimal("3.49")

    def test_item_names(self):
        """Only named items contribute search text."""
        raw = RawExtractedTransaction.model_validate({
            "items": [{"name": "Milk"}, {"quantity": 1}, {"name": "Bread"}],
        })
        assert raw.item_names == ["Milk", "Bread"]

    def test_date_with_time_suffix(self):
        """An ISO timestamp keeps only its date part."""
        raw = RawExtractedTransaction.model_validate({"date": "2024-02-03T10:00:00"})
        assert raw.transaction_date == date(2024, 2, 3)


class TestBoundaryModels:
    """Tests for upload and advisor models."""

    def test_receipt_upload_normalizes_mime_type(self):
        """MIME types are lower-cased and must look like type/subtype."""
        upload = ReceiptUpload(file_size_bytes=10, mime_type=" Image/JPEG ")
        assert upload.mime_type == "image/jpeg"
        with pytest.raises(ValidationError):
            ReceiptUpload(file_size_bytes=10, mime_type="jpeg")

    def test_citation_display_title(self):
        """Citations fall back to the host name when untitled."""
        assert Citation(uri="https://example.com/a", title="Deals").display_title == "Deals"
        assert Citation(uri="https://example.com/a").display_title == "example.com"


class TestEnums:
    """Tests for enums."""

    def test_category_order(self):
        """Category order is fixed; inference depends on it."""
        assert SUGGESTED_CATEGORIES == [
            "Groceries", "Dining", "Transport", "Utilities", "Shopping",
            "Entertainment", "Health", "Housing", "Education",
            "Personal Care", "Travel", "Subscriptions", "Other",
        ]
        assert Category.PERSONAL_CARE.value == "Personal Care"

    def test_theme_toggle(self):
        """Theme flips between light and dark."""
        assert Theme.LIGHT.toggled() == Theme.DARK
        assert Theme.DARK.toggled() == Theme.LIGHT


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            description="Transaction saved",
        )
        assert event.event_id is not None
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.BUDGET_SAVED,
            entity_id="Groceries",
            description="Budget created",
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "budget_saved"
        assert log_dict["entity_id"] == "Groceries"
        assert log_dict["correlation_id"] is None

    def test_audit_event_builder_transaction_added(self):
        """Test building a transaction-added event."""
        event = AuditEventBuilder.transaction_added(
            transaction_id="t1",
            store="Kroger",
            amount="12.50",
            source="RECEIPT",
        )
        assert event.event_type == AuditEventType.TRANSACTION_ADDED
        assert event.entity_id == "t1"
        assert event.details["source"] == "RECEIPT"
        assert event.is_user_action is True

    def test_audit_event_builder_ingestion_failed(self):
        """Failures are logged at error severity."""
        event = AuditEventBuilder.ingestion_failed("boom")
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "boom"

    def test_update_of_missing_transaction_is_a_warning(self):
        """Ignored updates are flagged."""
        event = AuditEventBuilder.transaction_updated("missing", found=False)
        assert event.severity == AuditSeverity.WARNING


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
