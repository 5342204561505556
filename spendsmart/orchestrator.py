"""
Main Orchestrator for SpendSmart

This module ties together all the components and defines the
end-to-end flows for:
1. Scan (file → AI extraction → review queue → user saves)
2. Advisor (question → summary + AI → chat transcript)

DESIGN DECISION: The orchestrator enforces the boundaries:
- No scanned transaction persists without the user saving it
- A flow never runs two AI requests at once (FlowBusyError)
- Every failure becomes ONE user-facing message, never a crash

The flows hold per-session UI state (review queue, chat transcript);
the durable data lives in the StateStore.
"""

import asyncio
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from spendsmart.agents import (
    AdvisorAgent,
    AgentError,
    ReceiptIngestionAgent,
    UploadRejectedError,
)
from spendsmart.audit import AuditLogger, create_correlation_id, get_logger
from spendsmart.config import get_settings
from spendsmart.models.transaction import (
    Category,
    ChatMessage,
    ChatRole,
    Transaction,
    TransactionSource,
    TransactionType,
)
from spendsmart.services.storage import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    PersistentStore,
)
from spendsmart.state import StateStore
from spendsmart.validation import new_item, update_item, update_transaction


logger = get_logger(__name__)

SCAN_FAILED_MESSAGE = "Failed to analyze image. Please try again with a clearer image."
ADVISOR_FAILED_MESSAGE = "Sorry, I encountered an error connecting to the AI service."
EMPTY_ADVICE_MESSAGE = "I couldn't generate a response. Please try again."
ADVISOR_GREETING = (
    "Hello! I'm SpendSmartAI. I can analyze your spending habits, suggest savings "
    "strategies, or find better prices for items you buy regularly. Try asking: "
    "'Where can I buy milk cheaper?' or 'Analyze my grocery spending'."
)
SUGGESTED_QUERIES = (
    "Where can I buy milk cheaper nearby?",
    "Analyze my spending on groceries last month.",
)


class FlowBusyError(RuntimeError):
    """A request is already in flight for this flow."""
    pass


class _CancellableFlow:
    """Single in-flight request with explicit cancellation."""

    def __init__(self):
        self._task: Optional[asyncio.Future] = None
        self._cancel_requested = False

    @property
    def is_busy(self) -> bool:
        return self._task is not None and not self._task.done()

    def _begin(self, coroutine) -> asyncio.Future:
        if self.is_busy:
            coroutine.close()
            raise FlowBusyError("A request is already in progress")
        self._cancel_requested = False
        self._task = asyncio.ensure_future(coroutine)
        return self._task

    def cancel(self) -> bool:
        """
        Cancel the in-flight request.

        Returns:
            True if a request was cancelled, False if nothing was running
        """
        if not self.is_busy:
            return False
        self._cancel_requested = True
        self._task.cancel()
        return True


class ScanFlow(_CancellableFlow):
    """
    Orchestrates the scan-and-review flow.

    Flow:
    1. Scan → ReceiptIngestionAgent proposes transactions
    2. Review → Proposals wait in the pending queue, editable
    3. Save → User saves one or all into the StateStore

    The pending queue is replaced by each successful scan or manual
    entry. Nothing is saved automatically.
    """

    def __init__(
        self,
        state_store: StateStore,
        ingestion_agent: Optional[ReceiptIngestionAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__()
        self._state_store = state_store
        self._agent = ingestion_agent or ReceiptIngestionAgent()
        self._audit_logger = audit_logger
        self._pending: list[Transaction] = []
        self._error: Optional[str] = None

    @property
    def pending(self) -> list[Transaction]:
        return list(self._pending)

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def in_review(self) -> bool:
        return bool(self._pending)

    async def scan(
        self,
        file_bytes: bytes,
        mime_type: str,
        filename: Optional[str] = None,
    ) -> list[Transaction]:
        """
        Send a receipt to the AI and queue the results for review.

        Returns:
            The proposed transactions, or [] on failure/cancellation
            (error holds the banner text on failure)

        Raises:
            FlowBusyError: A scan is already running
        """
        if self.is_busy:
            raise FlowBusyError("A scan is already in progress")

        correlation_id = create_correlation_id()
        self._error = None

        try:
            upload = self._agent.validate_upload(file_bytes, mime_type, filename)
        except UploadRejectedError as e:
            self._error = str(e)
            if self._audit_logger:
                self._audit_logger.log_ingestion_failed(str(e), correlation_id)
            return []

        task = self._begin(self._agent.ingest(file_bytes, mime_type, filename=filename))
        try:
            extracted = await task
        except asyncio.CancelledError:
            if not self._cancel_requested:
                raise
            logger.info("scan_cancelled", correlation_id=str(correlation_id))
            if self._audit_logger:
                self._audit_logger.log_ingestion_cancelled(correlation_id)
            return []
        except AgentError as e:
            logger.error("scan_failed", error=str(e), correlation_id=str(correlation_id))
            self._error = SCAN_FAILED_MESSAGE
            if self._audit_logger:
                self._audit_logger.log_ingestion_failed(str(e), correlation_id)
            return []
        finally:
            self._task = None

        self._pending = list(extracted)
        if self._audit_logger:
            self._audit_logger.log_receipt_ingested(
                upload_id=upload.upload_id,
                mime_type=upload.mime_type,
                transaction_count=len(extracted),
                correlation_id=correlation_id,
            )
        return list(extracted)

    def start_manual_entry(self, today: Optional[date] = None) -> Transaction:
        """Queue a blank manual transaction for editing."""
        transaction = Transaction(
            transaction_date=today or date.today(),
            store="",
            total_amount=Decimal("0"),
            category=Category.OTHER.value,
            items=[],
            type=TransactionType.EXPENSE,
            is_recurring=False,
            source=TransactionSource.MANUAL,
        )
        self._error = None
        self._pending = [transaction]
        return transaction

    def _index_of(self, transaction_id: str) -> int:
        for index, transaction in enumerate(self._pending):
            if transaction.id == transaction_id:
                return index
        raise KeyError(f"No pending transaction with id {transaction_id}")

    def get_pending(self, transaction_id: str) -> Transaction:
        return self._pending[self._index_of(transaction_id)]

    def _replace_pending(self, transaction: Transaction) -> Transaction:
        self._pending[self._index_of(transaction.id)] = transaction
        return transaction

    def update_pending(self, transaction_id: str, **fields: Any) -> Transaction:
        """
        Edit fields of a queued transaction.

        Raises:
            KeyError: Unknown id
            EditValidationError: A value was rejected (nothing is changed)
        """
        transaction = self.get_pending(transaction_id)
        for field, value in fields.items():
            transaction = update_transaction(transaction, field, value)
        return self._replace_pending(transaction)

    def update_pending_item(
        self,
        transaction_id: str,
        index: int,
        field: str,
        value: Any,
    ) -> Transaction:
        transaction = self.get_pending(transaction_id)
        items = list(transaction.items)
        items[index] = update_item(items[index], field, value)
        return self._replace_pending(transaction.model_copy(update={"items": items}))

    def add_pending_item(self, transaction_id: str) -> Transaction:
        transaction = self.get_pending(transaction_id)
        items = list(transaction.items) + [new_item(transaction)]
        return self._replace_pending(transaction.model_copy(update={"items": items}))

    def remove_pending_item(self, transaction_id: str, index: int) -> Transaction:
        transaction = self.get_pending(transaction_id)
        items = [item for i, item in enumerate(transaction.items) if i != index]
        return self._replace_pending(transaction.model_copy(update={"items": items}))

    def recalculate_pending_total(self, transaction_id: str) -> Transaction:
        """Set totalAmount to the sum of item totals (user-triggered)."""
        return self._replace_pending(self.get_pending(transaction_id).recalculate_total())

    def save_pending(self, transaction_id: str) -> Transaction:
        """Save one queued transaction and remove it from the queue."""
        transaction = self._pending.pop(self._index_of(transaction_id))
        self._state_store.add_transaction(transaction)
        return transaction

    def save_all(self) -> list[Transaction]:
        """Save every queued transaction in queue order."""
        saved, self._pending = self._pending, []
        self._state_store.add_transactions(saved)
        return saved

    def discard(self, transaction_id: str) -> None:
        self._pending.pop(self._index_of(transaction_id))

    def discard_all(self) -> None:
        self._pending = []
        self._error = None


class AdvisorFlow(_CancellableFlow):
    """
    Orchestrates the advisor chat.

    The transcript always starts with the greeting. Each send appends
    the user's message and exactly one assistant reply (advice, the
    empty-answer message, or the connection-error message).
    """

    def __init__(
        self,
        state_store: StateStore,
        advisor_agent: Optional[AdvisorAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__()
        self._state_store = state_store
        self._agent = advisor_agent or AdvisorAgent()
        self._audit_logger = audit_logger
        self._messages: list[ChatMessage] = [
            ChatMessage(role=ChatRole.ASSISTANT, content=ADVISOR_GREETING)
        ]

    @property
    def messages(self) -> list[ChatMessage]:
        return list(self._messages)

    def _reply(self, content: str, citations=None) -> ChatMessage:
        message = ChatMessage(role=ChatRole.ASSISTANT, content=content, citations=citations or [])
        self._messages.append(message)
        return message

    async def send(self, query: str) -> Optional[ChatMessage]:
        """
        Ask the advisor a question.

        Returns:
            The assistant message appended, or None if the query was
            blank or the request was cancelled

        Raises:
            FlowBusyError: A request is already running
        """
        if not query or not query.strip():
            return None
        if self.is_busy:
            raise FlowBusyError("The advisor is still answering")

        correlation_id = create_correlation_id()
        transactions = list(self._state_store.state.transactions)
        self._messages.append(ChatMessage(role=ChatRole.USER, content=query))

        task = self._begin(self._agent.advise(transactions, query))
        try:
            advice = await task
        except asyncio.CancelledError:
            if not self._cancel_requested:
                raise
            logger.info("advice_cancelled", correlation_id=str(correlation_id))
            return None
        except AgentError as e:
            logger.error("advice_failed", error=str(e), correlation_id=str(correlation_id))
            if self._audit_logger:
                self._audit_logger.log_advice_failed(str(e), correlation_id)
            return self._reply(ADVISOR_FAILED_MESSAGE)
        finally:
            self._task = None

        if self._audit_logger:
            self._audit_logger.log_advice_generated(
                transaction_count=len(transactions),
                citation_count=len(advice.citations),
                correlation_id=correlation_id,
            )
        return self._reply(advice.text or EMPTY_ADVICE_MESSAGE, advice.citations)

    def reset(self) -> None:
        """Start a fresh conversation."""
        self._messages = [ChatMessage(role=ChatRole.ASSISTANT, content=ADVISOR_GREETING)]


def create_app_components(
    use_file_storage: bool = True,
) -> tuple[StateStore, ScanFlow, AdvisorFlow, AuditLogger]:
    """
    Factory function to create all application components.

    Args:
        use_file_storage: Whether to persist to the JSON file configured
                          in StorageSettings. Set to False for testing
                          or a throwaway session.

    Returns:
        (state_store, scan_flow, advisor_flow, audit_logger)
    """
    settings = get_settings()
    audit_logger = AuditLogger()

    if use_file_storage:
        backend = JsonFileKeyValueStore(settings.storage.path)
    else:
        backend = InMemoryKeyValueStore()

    persistent_store = PersistentStore(backend, audit_logger=audit_logger)
    state_store = StateStore.open(
        persistent_store,
        audit_logger=audit_logger,
        default_theme=settings.app.default_theme,
    )

    scan_flow = ScanFlow(state_store, audit_logger=audit_logger)
    advisor_flow = AdvisorFlow(state_store, audit_logger=audit_logger)

    return state_store, scan_flow, advisor_flow, audit_logger
