"""Edit validation package."""

from spendsmart.validation.validator import (
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
    validate_item_name,
)

__all__ = [
    "EditValidationError",
    "build_budget",
    "new_item",
    "parse_amount",
    "parse_date",
    "parse_flag",
    "parse_quantity",
    "update_item",
    "update_transaction",
    "validate_category",
    "validate_item_name",
]
