"""
Core Data Models for SpendSmart

These models define the schemas for everything the tracker stores or
exchanges with the AI service. They are designed to:
1. Round-trip through the local key-value store unchanged
2. Keep the camelCase wire names of the stored JSON
3. Hold money as Decimal in memory and plain JSON numbers on disk
4. Turn untrusted AI output into typed records at the boundary

DESIGN DECISION: Stored entities (Transaction, Item, Budget, User) are
lenient about extra keys so older or newer payloads still load, while
the raw AI records coerce or drop anything they cannot understand
instead of raising.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any, Optional, Union
from urllib.parse import urlparse
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
)
from pydantic.alias_generators import to_camel


def _to_json_number(value: Decimal) -> Union[int, float]:
    """Integral amounts serialize as ints, everything else as floats."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


# Decimal in memory, JSON number on disk
Money = Annotated[
    Decimal,
    PlainSerializer(_to_json_number, return_type=Union[int, float], when_used="json"),
]


def new_transaction_id() -> str:
    """Opaque identifier for a new transaction."""
    return uuid4().hex[:12]


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Category(str, Enum):
    """
    Spending categories, in their canonical order.

    DESIGN DECISION: The declaration order is part of the contract.
    Category inference walks this order and the first match wins.
    """
    GROCERIES = "Groceries"
    DINING = "Dining"
    TRANSPORT = "Transport"
    UTILITIES = "Utilities"
    SHOPPING = "Shopping"
    ENTERTAINMENT = "Entertainment"
    HEALTH = "Health"
    HOUSING = "Housing"
    EDUCATION = "Education"
    PERSONAL_CARE = "Personal Care"
    TRAVEL = "Travel"
    SUBSCRIPTIONS = "Subscriptions"
    OTHER = "Other"


SUGGESTED_CATEGORIES: list[str] = [category.value for category in Category]

# Longest names the edit forms accept
ITEM_NAME_MAX_LENGTH = 200
BUDGET_CATEGORY_MAX_LENGTH = 100


class TransactionType(str, Enum):
    """Direction of money flow."""
    EXPENSE = "EXPENSE"
    INCOME = "INCOME"


class TransactionSource(str, Enum):
    """Where a transaction came from."""
    RECEIPT = "RECEIPT"
    STATEMENT = "STATEMENT"
    MANUAL = "MANUAL"


class Theme(str, Enum):
    """UI colour theme."""
    LIGHT = "light"
    DARK = "dark"

    def toggled(self) -> "Theme":
        return Theme.DARK if self is Theme.LIGHT else Theme.LIGHT


class BudgetStatus(str, Enum):
    """Budget health, derived from spent / limit."""
    ON_TRACK = "On Track"
    NEARING_LIMIT = "Nearing Limit"
    EXCEEDED = "Exceeded"


class ChatRole(str, Enum):
    """Who wrote an advisor chat message."""
    USER = "user"
    ASSISTANT = "ai"


# =============================================================================
# STORED ENTITIES
# =============================================================================

class Item(BaseModel):
    """
    A single line item on a receipt.

    total_price == quantity * unit_price is a soft invariant; it is only
    recomputed when the user edits quantity or unit price.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    name: str = Field(
        default="",
        description="Item name as printed on the receipt"
    )
    quantity: Money = Field(
        default=Decimal("1"),
        description="Units bought"
    )
    unit_price: Money = Field(
        default=Decimal("0"),
        description="Price per unit"
    )
    total_price: Money = Field(
        default=Decimal("0"),
        description="Line total"
    )
    category: Optional[str] = None
    sub_category: Optional[str] = None

    def with_recomputed_total(self) -> "Item":
        """Copy of this item with total_price = quantity * unit_price."""
        return self.model_copy(update={"total_price": self.quantity * self.unit_price})


class Transaction(BaseModel):
    """
    One expense or income record.

    DESIGN DECISION: The date attribute is called transaction_date in
    Python (so it does not shadow datetime.date) but is stored under
    the "date" key like every other camelCase field.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    id: str = Field(
        default_factory=new_transaction_id,
        min_length=1,
        description="Opaque transaction id"
    )
    transaction_date: date = Field(
        default_factory=date.today,
        alias="date",
        description="Calendar date of the purchase"
    )
    store: str = Field(
        default="",
        description="Merchant name"
    )
    total_amount: Money = Field(
        default=Decimal("0"),
        description="Amount paid"
    )
    category: str = Field(
        default=Category.OTHER.value,
        description="Spending category"
    )
    items: list[Item] = Field(default_factory=list)
    type: TransactionType = TransactionType.EXPENSE
    is_recurring: bool = Field(
        default=False,
        description="Repeating bill or subscription"
    )
    source: TransactionSource = TransactionSource.MANUAL
    receipt_image: Optional[str] = Field(
        default=None,
        description="Base64 receipt image, when kept"
    )

    @property
    def month_key(self) -> str:
        """YYYY-MM bucket this transaction belongs to."""
        return self.transaction_date.isoformat()[:7]

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE

    @property
    def items_total(self) -> Decimal:
        """Sum of item totals (advisory; may differ from total_amount)."""
        return sum((item.total_price for item in self.items), Decimal("0"))

    def recalculate_total(self) -> "Transaction":
        """Copy of this transaction with total_amount set to the item sum."""
        return self.model_copy(update={"total_amount": self.items_total})


class Budget(BaseModel):
    """Spending limit for one category (category is the key)."""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        extra="ignore",
    )

    category: str = Field(
        ...,
        min_length=1,
        max_length=BUDGET_CATEGORY_MAX_LENGTH,
        description="Category this budget caps"
    )
    limit: Money = Field(
        ...,
        description="Spending limit"
    )

    def matches(self, category: str) -> bool:
        """Case-insensitive category match."""
        return self.category.lower() == category.strip().lower()


class User(BaseModel):
    """Session-only identity. No password, no server verification."""
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    email: str


# =============================================================================
# DERIVED VIEWS
# =============================================================================

class BudgetProgress(BaseModel):
    """Budget usage for one category."""

    category: Optional[str] = None
    spent: Decimal = Decimal("0")
    limit: Optional[Decimal] = None
    percentage: Decimal = Field(
        ...,
        ge=0,
        le=100,
        description="Spent as a percentage of the limit, capped at 100"
    )
    status: BudgetStatus


class MonthlySpend(BaseModel):
    """One bar of the monthly history chart."""

    month_key: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}$",
        description="YYYY-MM"
    )
    month_label: str
    amount: Decimal = Decimal("0")


class ItemTotals(BaseModel):
    """Accumulated quantity and spend for one item name."""

    quantity: Decimal = Decimal("0")
    total: Decimal = Decimal("0")


class ChartPoint(BaseModel):
    """A {name, value} pair for pie and bar charts."""

    name: str
    value: Decimal


# =============================================================================
# AI BOUNDARY MODELS
# =============================================================================

def _lenient_decimal(value: Any) -> Optional[Decimal]:
    """Best-effort number parsing; None for anything that is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace(",", "").lstrip("$")
        if not value:
            return None
    elif not isinstance(value, (int, float, Decimal)):
        return None
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


def _lenient_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        text = str(value).strip()
        return text or None
    return None


class RawExtractedItem(BaseModel):
    """Line item as returned by the AI service, before normalization."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    name: Optional[str] = None
    quantity: Optional[Decimal] = None
    unit_price: Optional[Decimal] = None
    total_price: Optional[Decimal] = None
    category: Optional[str] = None

    @field_validator('name', 'category', mode='before')
    @classmethod
    def coerce_text(cls, v: Any) -> Optional[str]:
        return _lenient_str(v)

    @field_validator('quantity', 'unit_price', 'total_price', mode='before')
    @classmethod
    def coerce_number(cls, v: Any) -> Optional[Decimal]:
        return _lenient_decimal(v)


class RawExtractedTransaction(BaseModel):
    """
    Transaction record as returned by the AI service.

    CRITICAL: This is PROPOSED data, NOT verified.
    Every field is optional; values of the wrong shape become None
    so that normalization can apply its defaults.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    store: Optional[str] = None
    transaction_date: Optional[date] = Field(default=None, alias="date")
    total_amount: Optional[Decimal] = None
    category: Optional[str] = None
    is_recurring: Optional[bool] = None
    items: list[RawExtractedItem] = Field(default_factory=list)

    @field_validator('store', 'category', mode='before')
    @classmethod
    def coerce_text(cls, v: Any) -> Optional[str]:
        return _lenient_str(v)

    @field_validator('total_amount', mode='before')
    @classmethod
    def coerce_number(cls, v: Any) -> Optional[Decimal]:
        return _lenient_decimal(v)

    @field_validator('transaction_date', mode='before')
    @classmethod
    def coerce_date(cls, v: Any) -> Optional[date]:
        if isinstance(v, date):
            return v
        if not isinstance(v, str):
            return None
        try:
            return date.fromisoformat(v.strip()[:10])
        except ValueError:
            return None

    @field_validator('is_recurring', mode='before')
    @classmethod
    def coerce_bool(cls, v: Any) -> Optional[bool]:
        if v is None or isinstance(v, bool):
            return v
        if isinstance(v, str):
            return v.strip().lower() in ("true", "yes", "1")
        if isinstance(v, (int, float)):
            return bool(v)
        return None

    @field_validator('items', mode='before')
    @classmethod
    def drop_malformed_items(cls, v: Any) -> list:
        if not isinstance(v, list):
            return []
        return [item for item in v if isinstance(item, dict)]

    @property
    def item_names(self) -> list[str]:
        return [item.name for item in self.items if item.name]


class ReceiptUpload(BaseModel):
    """Represents an uploaded receipt or statement before extraction."""

    upload_id: UUID = Field(
        default_factory=uuid4,
        description="Unique upload identifier"
    )
    uploaded_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    filename: Optional[str] = None
    file_size_bytes: int = Field(ge=0)
    mime_type: str

    @field_validator('mime_type')
    @classmethod
    def normalize_mime_type(cls, v: str) -> str:
        v = v.strip().lower()
        if "/" not in v:
            raise ValueError(f"Not a MIME type: {v!r}")
        return v


class Citation(BaseModel):
    """A web source backing part of an advisor answer."""

    uri: str
    title: Optional[str] = None

    @property
    def display_title(self) -> str:
        return self.title or urlparse(self.uri).hostname or self.uri


class AdviceResponse(BaseModel):
    """Advisor answer: markdown text plus optional citations."""

    text: str = ""
    citations: list[Citation] = Field(default_factory=list)


class ChatMessage(BaseModel):
    """One message in the advisor transcript."""

    role: ChatRole
    content: str
    citations: list[Citation] = Field(default_factory=list)
