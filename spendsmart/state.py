"""
Application State

The three pieces of shared client state (signed-in user, theme, and the
transaction/budget data) live in one immutable AppState. StateStore is
the only thing allowed to replace it: every named operation builds the
next state, swaps it in, writes the changed collection through the
PersistentStore and returns the new state.

DESIGN DECISION: A failed storage write is logged, not raised. The
in-memory state stays authoritative for the session, matching the
fire-and-forget persistence of the web client.
"""

from typing import Callable, Iterable, Optional

from pydantic import BaseModel, ConfigDict

from spendsmart.audit.logger import AuditLogger, get_logger
from spendsmart.models.transaction import Budget, Theme, Transaction, User
from spendsmart.services.storage import PersistentStore, StorageError


LOCAL_USER_ID = "1"
GOOGLE_MOCK_EMAIL = "user@gmail.com"
GOOGLE_MOCK_NAME = "Google User"

logger = get_logger(__name__)


class AppState(BaseModel):
    """Snapshot of everything the pages render from."""
    model_config = ConfigDict(frozen=True)

    user: Optional[User] = None
    theme: Theme = Theme.LIGHT
    transactions: tuple[Transaction, ...] = ()
    budgets: tuple[Budget, ...] = ()

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None


class StateStore:
    """
    Reducer over AppState backed by a PersistentStore.

    Operations run one at a time on the UI thread, so there is no
    locking; each returns the state it produced.
    """

    def __init__(
        self,
        persistent_store: PersistentStore,
        state: Optional[AppState] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._persistent_store = persistent_store
        self._state = state or AppState()
        self._audit_logger = audit_logger

    @classmethod
    def open(
        cls,
        persistent_store: PersistentStore,
        audit_logger: Optional[AuditLogger] = None,
        default_theme: Theme = Theme.LIGHT,
    ) -> "StateStore":
        """Hydrate state from storage; missing values fall back to defaults."""
        state = AppState(
            user=persistent_store.load_user(),
            theme=persistent_store.load_theme() or Theme(default_theme),
            transactions=tuple(persistent_store.load_transactions()),
            budgets=tuple(persistent_store.load_budgets()),
        )
        logger.info(
            "state_loaded",
            authenticated=state.is_authenticated,
            transaction_count=len(state.transactions),
            budget_count=len(state.budgets),
        )
        return cls(persistent_store, state=state, audit_logger=audit_logger)

    @property
    def state(self) -> AppState:
        return self._state

    def _persist(self, what: str, write: Callable[[], None]) -> None:
        try:
            write()
        except StorageError as e:
            logger.error("state_persist_failed", collection=what, error=str(e))

    def _replace(self, **changes) -> AppState:
        self._state = self._state.model_copy(update=changes)
        return self._state

    # =========================================================================
    # AUTH
    # =========================================================================

    def login(self, email: str, name: Optional[str] = None) -> AppState:
        """
        Start a local session.

        No password and no server check; the name defaults to the part
        of the email before "@".
        """
        email = (email or "").strip()
        if not email:
            raise ValueError("email is required")

        user = User(
            id=LOCAL_USER_ID,
            name=(name or "").strip() or email.split("@")[0],
            email=email,
        )
        state = self._replace(user=user)
        self._persist("user", lambda: self._persistent_store.save_user(user))

        if self._audit_logger:
            self._audit_logger.log_user_logged_in(user.id, user.email)
        return state

    def login_with_google(self) -> AppState:
        """Mock Google sign-in with a fixed demo account."""
        return self.login(GOOGLE_MOCK_EMAIL, GOOGLE_MOCK_NAME)

    def logout(self) -> AppState:
        previous = self._state.user
        state = self._replace(user=None)
        self._persist("user", self._persistent_store.clear_user)

        if self._audit_logger:
            self._audit_logger.log_user_logged_out(previous.id if previous else None)
        return state

    # =========================================================================
    # THEME
    # =========================================================================

    def toggle_theme(self) -> AppState:
        theme = self._state.theme.toggled()
        state = self._replace(theme=theme)
        self._persist("theme", lambda: self._persistent_store.save_theme(theme))

        if self._audit_logger:
            self._audit_logger.log_theme_changed(theme.value)
        return state

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    def _save_transactions(self) -> None:
        transactions = list(self._state.transactions)
        self._persist(
            "transactions",
            lambda: self._persistent_store.save_transactions(transactions),
        )

    def add_transaction(self, transaction: Transaction) -> AppState:
        """Append one transaction."""
        return self.add_transactions([transaction])

    def add_transactions(self, transactions: Iterable[Transaction]) -> AppState:
        """Append several transactions in order, with a single write."""
        added = tuple(transactions)
        if not added:
            return self._state

        state = self._replace(transactions=self._state.transactions + added)
        self._save_transactions()

        if self._audit_logger:
            for transaction in added:
                self._audit_logger.log_transaction_added(
                    transaction_id=transaction.id,
                    store=transaction.store,
                    amount=str(transaction.total_amount),
                    source=transaction.source.value,
                )
        return state

    def update_transaction(self, updated: Transaction) -> AppState:
        """Replace the transaction with the same id; unknown ids change nothing."""
        found = any(t.id == updated.id for t in self._state.transactions)
        if found:
            self._replace(transactions=tuple(
                updated if t.id == updated.id else t
                for t in self._state.transactions
            ))
            self._save_transactions()
        else:
            logger.warning("transaction_not_found", transaction_id=updated.id)

        if self._audit_logger:
            self._audit_logger.log_transaction_updated(updated.id, found)
        return self._state

    def delete_transaction(self, transaction_id: str) -> AppState:
        remaining = tuple(t for t in self._state.transactions if t.id != transaction_id)
        if len(remaining) == len(self._state.transactions):
            return self._state

        state = self._replace(transactions=remaining)
        self._save_transactions()

        if self._audit_logger:
            self._audit_logger.log_transaction_deleted(transaction_id)
        return state

    # =========================================================================
    # BUDGETS
    # =========================================================================

    def _save_budgets(self) -> None:
        budgets = list(self._state.budgets)
        self._persist("budgets", lambda: self._persistent_store.save_budgets(budgets))

    def add_budget(self, budget: Budget) -> AppState:
        """Append a budget without checking for an existing category."""
        state = self._replace(budgets=self._state.budgets + (budget,))
        self._save_budgets()
        return state

    def update_budget(self, updated: Budget) -> AppState:
        """Replace the budget whose category matches exactly."""
        state = self._replace(budgets=tuple(
            updated if b.category == updated.category else b
            for b in self._state.budgets
        ))
        self._save_budgets()
        return state

    def save_budget(self, budget: Budget) -> AppState:
        """
        Insert or update a budget.

        Categories are unique case-insensitively: an existing budget keeps
        its spelling and takes the new limit.
        """
        existing = next((b for b in self._state.budgets if b.matches(budget.category)), None)
        if existing is not None:
            state = self.update_budget(existing.model_copy(update={"limit": budget.limit}))
        else:
            state = self.add_budget(budget)

        if self._audit_logger:
            self._audit_logger.log_budget_saved(
                category=(existing or budget).category,
                limit=str(budget.limit),
                created=existing is None,
            )
        return state
