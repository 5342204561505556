"""
Data Models Package

This package contains all Pydantic models used in SpendSmart.
All data flowing through the system must conform to these schemas.
"""

from spendsmart.models.transaction import (
    BUDGET_CATEGORY_MAX_LENGTH,
    ITEM_NAME_MAX_LENGTH,
    SUGGESTED_CATEGORIES,
    AdviceResponse,
    Budget,
    BudgetProgress,
    BudgetStatus,
    Category,
    ChartPoint,
    ChatMessage,
    ChatRole,
    Citation,
    Item,
    ItemTotals,
    MonthlySpend,
    RawExtractedItem,
    RawExtractedTransaction,
    ReceiptUpload,
    Theme,
    Transaction,
    TransactionSource,
    TransactionType,
    User,
    new_transaction_id,
)
from spendsmart.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "BUDGET_CATEGORY_MAX_LENGTH",
    "ITEM_NAME_MAX_LENGTH",
    "SUGGESTED_CATEGORIES",
    "AdviceResponse",
    "Budget",
    "BudgetProgress",
    "BudgetStatus",
    "Category",
    "ChartPoint",
    "ChatMessage",
    "ChatRole",
    "Citation",
    "Item",
    "ItemTotals",
    "MonthlySpend",
    "RawExtractedItem",
    "RawExtractedTransaction",
    "ReceiptUpload",
    "Theme",
    "Transaction",
    "TransactionSource",
    "TransactionType",
    "User",
    "new_transaction_id",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
