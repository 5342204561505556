"""
AI Agents for SpendSmart

Two thin boundaries around Google Gemini:

1. RECEIPT INGESTION AGENT:
   - CAN: Read a receipt/statement image or PDF and propose transactions
   - OWNS: File validation, extraction prompt + response schema,
     turning the raw JSON into typed Transactions (defaults, category
     inference, source tagging)
   - CANNOT: Persist anything; the user reviews every proposal first

2. ADVISOR AGENT:
   - CAN: Comment on a bounded summary of recent transactions
   - OWNS: Building the summary and prompt, reading citations
   - CANNOT: See more than advisor_max_transactions records

Any transport or parsing failure is surfaced as ONE exception
(IngestionError / AdvisorError). There are no partial results.
"""

import json
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional, Sequence

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from spendsmart.audit.logger import get_logger
from spendsmart.categorization.inference import infer_category
from spendsmart.config import get_settings
from spendsmart.config.settings import AppSettings, GeminiSettings
from spendsmart.models.transaction import (
    ITEM_NAME_MAX_LENGTH,
    SUGGESTED_CATEGORIES,
    AdviceResponse,
    Citation,
    Item,
    RawExtractedItem,
    RawExtractedTransaction,
    ReceiptUpload,
    Transaction,
    TransactionSource,
    TransactionType,
)


logger = get_logger(__name__)

UNCATEGORIZED = "Uncategorized"
UNKNOWN_STORE = "Unknown Store"

# Errors worth another attempt; everything else fails immediately
TRANSIENT_ERRORS = (
    google_exceptions.ServiceUnavailable,
    google_exceptions.InternalServerError,
    google_exceptions.DeadlineExceeded,
    google_exceptions.ResourceExhausted,
)


class AgentError(Exception):
    """Base exception for AI agent failures."""
    pass


class IngestionError(AgentError):
    """Receipt could not be analyzed."""
    pass


class UploadRejectedError(IngestionError):
    """Uploaded file is the wrong type or too large."""
    pass


class AdvisorError(AgentError):
    """Advisor request failed."""
    pass


# =============================================================================
# PROMPTS AND SCHEMAS
# =============================================================================

EXTRACTION_INSTRUCTIONS = f"""
Analyze this document (receipt or bank statement) and extract transaction data.

CRITICAL OCR & PARSING INSTRUCTIONS:
1. Handwriting & Low Quality: Pay close attention to handwritten text, especially for totals or tips. If text is blurry or faded, use context (e.g., sum of items + tax) to infer the correct Total Amount.
2. Multiple Receipts: If the image contains multiple distinct receipts (e.g., side-by-side), split them into separate transaction objects.
3. Accuracy Check: Verify that individual item prices roughly sum up to the total. Prefer the explicitly labeled "Total" or "Grand Total" over subtotals.
4. Date Handling: Look for dates in various formats (MM/DD/YY, DD-Mon-YYYY). Convert strictly to ISO 8601 (YYYY-MM-DD). If year is missing, assume the current year.

Extract the following structured data:
- store: Merchant name (string).
- date: Transaction date (YYYY-MM-DD).
- totalAmount: Final amount paid (number).
- category: Best fit from: [{", ".join(SUGGESTED_CATEGORIES)}].
- isRecurring: true if it looks like a subscription, rent, insurance, or utility bill; otherwise false.
- items: Array of line items with:
  - name (string)
  - quantity (number, default 1 if unspecified)
  - unitPrice (number)
  - totalPrice (number)
  - category (optional, same list as above)

Return ONLY a JSON array of objects with this structure. No extra commentary, no markdown, no explanation - just pure JSON.
""".strip()

RECEIPT_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "store": {"type": "string"},
            "date": {"type": "string"},
            "totalAmount": {"type": "number"},
            "category": {"type": "string"},
            "isRecurring": {"type": "boolean"},
            "items": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "name": {"type": "string"},
                        "quantity": {"type": "number"},
                        "unitPrice": {"type": "number"},
                        "totalPrice": {"type": "number"},
                        "category": {"type": "string"},
                    },
                    "required": ["name", "quantity", "unitPrice", "totalPrice"],
                },
            },
        },
        "required": ["store", "date", "totalAmount", "category", "isRecurring", "items"],
    },
}

ADVISOR_PERSONA = """
You are SpendSmartAI, a friendly but direct personal finance coach.

Here is a summary of the user's recent transactions as JSON:
{transactions_json}

User query:
"{query}"

Tasks:
1. Analyse their spending patterns (e.g., overspending categories, recurring bills, obvious savings).
2. Answer the user's query specifically.
3. Give concrete, actionable suggestions (e.g., "Set a weekly grocery cap of $X", "Cancel subscription Y", "Switch to a cheaper provider").
4. If relevant, mention rough percentage splits between key categories (Groceries, Housing, Transport, etc.).

Format your response in clear markdown with:
- short paragraphs
- bullet points
- section headings like "Overview", "Key Issues", "Recommendations".
""".strip()


# =============================================================================
# RESPONSE PARSING (pure functions)
# =============================================================================

def _strip_code_fences(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [line for line in lines[1:] if not line.strip().startswith("```")]
        cleaned = "\n".join(lines).strip()
    return cleaned


def parse_extraction_response(text: Optional[str]) -> list[RawExtractedTransaction]:
    """
    Parse the model's JSON answer into raw records.

    Empty text means nothing was found and yields []. A single object
    is treated as a one-element array. Anything that is not JSON, or
    a record that is not an object, raises IngestionError.
    """
    cleaned = _strip_code_fences(text or "")
    if not cleaned:
        logger.warning("extraction_response_empty")
        return []

    try:
        data = json.loads(cleaned)
    except ValueError as e:
        raise IngestionError(f"AI response is not valid JSON: {e}") from e

    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise IngestionError(f"AI response must be a JSON array, got {type(data).__name__}")

    records = []
    for index, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise IngestionError(f"Record {index} is not an object: {entry!r}")
        try:
            records.append(RawExtractedTransaction.model_validate(entry))
        except ValidationError as e:
            raise IngestionError(f"Record {index} could not be read: {e}") from e
    return records


def _normalize_item(raw: RawExtractedItem) -> Item:
    quantity = raw.quantity if raw.quantity is not None else Decimal("1")
    unit_price = raw.unit_price
    total_price = raw.total_price

    if unit_price is None:
        if total_price is not None and quantity > 0:
            unit_price = total_price / quantity
        else:
            unit_price = Decimal("0")
    if total_price is None:
        total_price = quantity * unit_price

    return Item(
        name=(raw.name or "")[:ITEM_NAME_MAX_LENGTH],
        quantity=quantity,
        unit_price=unit_price,
        total_price=total_price,
        category=raw.category,
    )


def needs_inferred_category(category: Optional[str]) -> bool:
    """Missing, "Uncategorized" or off-list categories are replaced by inference."""
    return not category or category == UNCATEGORIZED or category not in SUGGESTED_CATEGORIES


def normalize_extracted(raw: RawExtractedTransaction, today: date) -> Transaction:
    """
    Turn one raw AI record into a reviewable Transaction.

    Defaults: date → today, store → "Unknown Store", totalAmount → 0,
    isRecurring → false. Category inference runs on the raw store text
    and item names. Always an EXPENSE from a RECEIPT.
    """
    category = raw.category
    if needs_inferred_category(category):
        category = infer_category(raw.store or "", raw.item_names)

    return Transaction(
        transaction_date=raw.transaction_date or today,
        store=raw.store or UNKNOWN_STORE,
        total_amount=raw.total_amount if raw.total_amount is not None else Decimal("0"),
        category=category,
        items=[_normalize_item(item) for item in raw.items],
        type=TransactionType.EXPENSE,
        is_recurring=bool(raw.is_recurring),
        source=TransactionSource.RECEIPT,
    )


def summarize_transactions(
    transactions: Iterable[Transaction],
    limit: int = 50,
) -> list[dict[str, Any]]:
    """
    Reduce the most recent transactions to what the advisor needs.

    Newest dates first; equal dates keep their stored order.
    """
    recent = sorted(transactions, key=lambda t: t.transaction_date, reverse=True)[:limit]
    return [
        {
            "store": t.store,
            "amount": float(t.total_amount),
            "date": t.transaction_date.isoformat(),
            "items": ", ".join(item.name for item in t.items),
            "category": t.category,
            "isRecurring": t.is_recurring,
        }
        for t in recent
    ]


def build_advice_prompt(summary: Sequence[dict[str, Any]], query: str) -> str:
    return ADVISOR_PERSONA.format(
        transactions_json=json.dumps(list(summary), indent=2),
        query=query.strip(),
    )


def extract_citations(response: Any) -> list[Citation]:
    """Web sources from the response's grounding metadata, de-duplicated by URI."""
    citations: list[Citation] = []
    seen: set[str] = set()

    for candidate in getattr(response, "candidates", None) or []:
        metadata = getattr(candidate, "grounding_metadata", None)
        for chunk in getattr(metadata, "grounding_chunks", None) or []:
            web = getattr(chunk, "web", None)
            if web is None:
                web = getattr(getattr(chunk, "retrieved_context", None), "web", None)
            uri = getattr(web, "uri", None)
            if not isinstance(uri, str) or not uri or uri in seen:
                continue
            title = getattr(web, "title", None)
            seen.add(uri)
            citations.append(Citation(uri=uri, title=title if isinstance(title, str) and title else None))

    return citations


# =============================================================================
# AGENTS
# =============================================================================

class _GeminiAgent:
    """Shared Gemini setup and retrying request helper."""

    def __init__(
        self,
        model: Any = None,
        settings: Optional[GeminiSettings] = None,
        app_settings: Optional[AppSettings] = None,
    ):
        self._settings = settings or get_settings().gemini
        self._app_settings = app_settings or get_settings().app
        self._model = model if model is not None else self._configure_genai()

    def _generation_config(self) -> dict[str, Any]:
        return {
            "temperature": self._settings.temperature,
            "max_output_tokens": self._settings.max_output_tokens,
        }

    def _configure_genai(self):
        """Configure Google Generative AI."""
        if not self._settings.api_key:
            logger.warning(
                "gemini_api_key_missing",
                hint="Set GEMINI_API_KEY (or API_KEY) in the environment or .env",
            )
        genai.configure(api_key=self._settings.api_key)
        return genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config=self._generation_config(),
        )

    async def _generate(self, contents: Any, **kwargs: Any) -> Any:
        """Call the model, retrying transient service errors."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._settings.max_retries),
            wait=wait_exponential(multiplier=1, min=2, max=10),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._model.generate_content_async(contents, **kwargs)


class ReceiptIngestionAgent(_GeminiAgent):
    """
    Extracts transactions from a receipt or bank statement.

    RESPONSIBILITIES:
    - Reject unsupported or oversized uploads before calling the API
    - Send the file inline with extraction instructions and a JSON schema
    - Normalize every returned record into a Transaction

    BOUNDARIES:
    - NEVER persists data
    - NEVER returns a partial result after a failure
    """

    def _generation_config(self) -> dict[str, Any]:
        config = super()._generation_config()
        config["response_mime_type"] = "application/json"
        config["response_schema"] = RECEIPT_RESPONSE_SCHEMA
        return config

    def _mime_type_supported(self, mime_type: str) -> bool:
        for allowed in self._app_settings.supported_mime_types_list:
            if allowed.endswith("/*"):
                if mime_type.startswith(allowed[:-1]):
                    return True
            elif mime_type == allowed:
                return True
        return False

    def validate_upload(
        self,
        file_bytes: bytes,
        mime_type: str,
        filename: Optional[str] = None,
    ) -> ReceiptUpload:
        """
        Check the file before it is sent anywhere.

        Raises:
            UploadRejectedError: Empty, oversized or unsupported file
        """
        if not file_bytes:
            raise UploadRejectedError("The uploaded file is empty.")

        try:
            upload = ReceiptUpload(
                filename=filename,
                file_size_bytes=len(file_bytes),
                mime_type=mime_type or "",
            )
        except ValidationError as e:
            raise UploadRejectedError(f"Unsupported file type: {mime_type!r}") from e

        if not self._mime_type_supported(upload.mime_type):
            raise UploadRejectedError(
                f"Unsupported file type: {upload.mime_type}. "
                f"Allowed: {', '.join(self._app_settings.supported_mime_types_list)}"
            )
        if upload.file_size_bytes > self._app_settings.max_upload_size_bytes:
            raise UploadRejectedError(
                f"File is too large ({upload.file_size_bytes} bytes). "
                f"Maximum is {self._app_settings.max_upload_size_mb} MB."
            )
        return upload

    @staticmethod
    def build_file_part(file_bytes: bytes, mime_type: str) -> dict[str, Any]:
        """Inline-data part; the SDK base64-encodes the bytes on the wire."""
        return {"mime_type": mime_type, "data": file_bytes}

    async def ingest(
        self,
        file_bytes: bytes,
        mime_type: str,
        filename: Optional[str] = None,
        today: Optional[date] = None,
    ) -> list[Transaction]:
        """
        Analyze a receipt or statement.

        Returns:
            Proposed transactions in the order the model listed them

        Raises:
            UploadRejectedError: File rejected before any API call
            IngestionError: API call or response parsing failed
        """
        upload = self.validate_upload(file_bytes, mime_type, filename)
        parts = [
            self.build_file_part(file_bytes, upload.mime_type),
            EXTRACTION_INSTRUCTIONS,
        ]

        try:
            response = await self._generate(parts)
            text = response.text
        except Exception as e:
            logger.error("receipt_extraction_failed", error=str(e), mime_type=upload.mime_type)
            raise IngestionError(f"Receipt analysis failed: {e}") from e

        records = parse_extraction_response(text)
        today = today or date.today()
        try:
            transactions = [normalize_extracted(record, today) for record in records]
        except (ValidationError, ArithmeticError) as e:
            raise IngestionError(f"Extracted data could not be used: {e}") from e

        logger.info(
            "receipt_extracted",
            upload_id=str(upload.upload_id),
            transaction_count=len(transactions),
        )
        return transactions


class AdvisorAgent(_GeminiAgent):
    """
    Answers questions about the user's spending.

    The model only ever sees the reduced summary of recent transactions
    plus the user's question; it returns markdown and, when search
    grounding is enabled, the web sources it used.
    """

    async def advise(
        self,
        transactions: Sequence[Transaction],
        query: str,
    ) -> AdviceResponse:
        """
        Ask the advisor.

        Raises:
            AdvisorError: The request failed or the reply was unreadable
        """
        summary = summarize_transactions(
            transactions,
            limit=self._app_settings.advisor_max_transactions,
        )
        prompt = build_advice_prompt(summary, query)

        kwargs: dict[str, Any] = {}
        if self._settings.use_search_grounding:
            kwargs["tools"] = "google_search_retrieval"

        try:
            response = await self._generate(prompt, **kwargs)
            text = response.text
        except Exception as e:
            logger.error("advice_request_failed", error=str(e))
            raise AdvisorError(f"Advisor request failed: {e}") from e

        return AdviceResponse(
            text=(text or "").strip(),
            citations=extract_citations(response),
        )
