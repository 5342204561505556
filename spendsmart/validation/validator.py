"""
Edit-Boundary Validation

DESIGN DECISION: Values typed into edit forms are parsed here before
they reach a Transaction or Budget. Non-numeric, infinite or NaN input
is rejected with EditValidationError instead of flowing into the
aggregations as NaN.

IMPORTANT: Validation never silently fixes values. It either returns
a clean value or raises with a message the UI can show as-is.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

from spendsmart.models.transaction import (
    BUDGET_CATEGORY_MAX_LENGTH,
    ITEM_NAME_MAX_LENGTH,
    Budget,
    Item,
    Transaction,
)


_TRUE_WORDS = ("true", "yes", "1", "on")
_FALSE_WORDS = ("false", "no", "0", "off", "")


class EditValidationError(ValueError):
    """User-entered value could not be accepted."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)


def _parse_decimal(field: str, value: Union[str, int, float, Decimal, None]) -> Decimal:
    if value is None or isinstance(value, bool):
        raise EditValidationError(field, f"{field} is required")
    text = str(value).strip().replace(",", "").lstrip("$")
    if not text:
        raise EditValidationError(field, f"{field} is required")
    try:
        number = Decimal(text)
    except InvalidOperation:
        raise EditValidationError(field, f"{field} must be a number, got {value!r}")
    if not number.is_finite():
        raise EditValidationError(field, f"{field} must be a finite number")
    return number


def parse_amount(
    value: Union[str, int, float, Decimal, None],
    field: str = "amount",
    allow_negative: bool = False,
) -> Decimal:
    """Parse a money amount typed by the user."""
    number = _parse_decimal(field, value)
    if number < 0 and not allow_negative:
        raise EditValidationError(field, f"{field} cannot be negative")
    return number


def parse_quantity(value: Union[str, int, float, Decimal, None]) -> Decimal:
    """Parse an item quantity (must be zero or more)."""
    number = _parse_decimal("quantity", value)
    if number < 0:
        raise EditValidationError("quantity", "quantity cannot be negative")
    return number


def parse_date(value: Union[str, date, None]) -> date:
    """Parse a YYYY-MM-DD date from a form field."""
    if isinstance(value, date):
        return value
    if not value or not str(value).strip():
        raise EditValidationError("date", "date is required")
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise EditValidationError("date", f"date must be YYYY-MM-DD, got {value!r}")


def validate_category(value: Optional[str]) -> str:
    """Categories are free text but may not be blank."""
    category = (value or "").strip()
    if not category:
        raise EditValidationError("category", "category is required")
    return category


def parse_flag(field: str, value: Any) -> bool:
    """Parse a checkbox value; the strings "false" and "0" mean False."""
    if value is None or isinstance(value, bool):
        return bool(value)
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
        raise EditValidationError(field, f"{field} must be true or false, got {value!r}")
    if isinstance(value, (int, float, Decimal)):
        return bool(value)
    raise EditValidationError(field, f"{field} must be true or false, got {value!r}")


def validate_item_name(value: Any) -> str:
    name = str(value or "")
    if len(name) > ITEM_NAME_MAX_LENGTH:
        raise EditValidationError(
            "name", f"name must be at most {ITEM_NAME_MAX_LENGTH} characters"
        )
    return name


def update_item(item: Item, field: str, value: Any) -> Item:
    """
    Apply one edited field to an item.

    Editing quantity or unit price recomputes the line total.
    """
    if field == "name":
        return item.model_copy(update={"name": validate_item_name(value)})
    if field == "category":
        return item.model_copy(update={"category": validate_category(value)})
    if field == "quantity":
        return item.model_copy(update={"quantity": parse_quantity(value)}).with_recomputed_total()
    if field == "unit_price":
        return item.model_copy(
            update={"unit_price": parse_amount(value, field="unit_price")}
        ).with_recomputed_total()
    if field == "total_price":
        return item.model_copy(update={"total_price": parse_amount(value, field="total_price")})
    raise EditValidationError(field, f"Unknown item field: {field}")


def update_transaction(transaction: Transaction, field: str, value: Any) -> Transaction:
    """Apply one edited field to a transaction."""
    if field == "store":
        return transaction.model_copy(update={"store": str(value or "")})
    if field in ("date", "transaction_date"):
        return transaction.model_copy(update={"transaction_date": parse_date(value)})
    if field == "total_amount":
        return transaction.model_copy(
            update={"total_amount": parse_amount(value, field="total_amount")}
        )
    if field == "category":
        return transaction.model_copy(update={"category": validate_category(value)})
    if field == "is_recurring":
        return transaction.model_copy(update={"is_recurring": parse_flag("is_recurring", value)})
    raise EditValidationError(field, f"Unknown transaction field: {field}")


def new_item(transaction: Transaction) -> Item:
    """Blank line item for the edit form, defaulting to the transaction's category."""
    return Item(
        name="New Item",
        quantity=Decimal("1"),
        unit_price=Decimal("0"),
        total_price=Decimal("0"),
        category=transaction.category or "Other",
    )


def build_budget(category: Optional[str], limit: Union[str, int, float, Decimal, None]) -> Budget:
    """Validate the add-budget form."""
    category = validate_category(category)
    if len(category) > BUDGET_CATEGORY_MAX_LENGTH:
        raise EditValidationError(
            "category", f"category must be at most {BUDGET_CATEGORY_MAX_LENGTH} characters"
        )
    return Budget(
        category=category,
        limit=parse_amount(limit, field="limit"),
    )
