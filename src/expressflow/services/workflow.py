# =============================================================================
# FILE: src/expressflow/services/workflow.py
# Role-checked quote actions on top of the store
# =============================================================================

import logging
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from expressflow.clock import resolve_now
from expressflow.config import Settings, settings as default_settings
from expressflow.exceptions import AuthorizationError, ExpressFlowError
from expressflow.models.quote import QuoteForm, QuoteRequest, QuoteStatus, SupplierQuote
from expressflow.models.user import User
from expressflow.services import lifecycle, visibility
from expressflow.services.store import QuoteStore

logger = logging.getLogger(__name__)


class ActionStatus(str, Enum):
    COMPLETED = "completed"
    REJECTED = "rejected"


class ActionResult(BaseModel):
    """Outcome of a workflow action. Rejections carry the message to show the user."""
    action: str
    status: ActionStatus
    quote_id: Optional[str] = None
    quote: Optional[QuoteRequest] = None
    error_message: Optional[str] = None
    errors: List[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == ActionStatus.COMPLETED


class QuoteWorkflow:
    """
    Entry point for every quote mutation.

    Each action checks the acting user's role, runs the lifecycle transition
    and replaces the record in the store. Rejected actions leave the store
    untouched and come back as a REJECTED result instead of raising.
    """

    def __init__(
        self,
        store: QuoteStore,
        config: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.config = config or default_settings
        self._clock = clock
        self._metrics = {
            "total_actions": 0,
            "completed_actions": 0,
            "rejected_actions": 0,
        }

    def _now(self) -> datetime:
        return self._clock() if self._clock else resolve_now()

    # -------- plumbing --------
    def _run(self, action: str, quote_id: Optional[str], fn) -> ActionResult:
        self._metrics["total_actions"] += 1
        try:
            quote = fn()
        except ExpressFlowError as e:
            self._metrics["rejected_actions"] += 1
            logger.warning(f"{action} rejected for {quote_id or 'new quote'}: {e}")
            return ActionResult(
                action=action,
                status=ActionStatus.REJECTED,
                quote_id=quote_id,
                error_message=str(e),
                errors=list(getattr(e, "errors", [str(e)])),
            )

        self._metrics["completed_actions"] += 1
        return ActionResult(
            action=action,
            status=ActionStatus.COMPLETED,
            quote_id=quote.id,
            quote=quote,
        )

    @staticmethod
    def _require(allowed: bool, message: str) -> None:
        if not allowed:
            raise AuthorizationError(message)

    # -------- queries --------
    def list_quotes(
        self,
        user: User,
        status_filter: visibility.StatusFilter = visibility.FILTER_ALL,
    ) -> List[QuoteRequest]:
        return visibility.filter_quotes(self.store.all(), user, status_filter, now=self._now())

    def get_quote(self, user: User, quote_id: str) -> Optional[QuoteRequest]:
        quote = self.store.get(quote_id)
        if quote is None or not visibility.is_visible(quote, user):
            return None
        return quote

    # -------- actions --------
    def create_quote(self, user: User, form: QuoteForm) -> ActionResult:
        def run():
            self._require(visibility.can_create(user), "Only sales and management can create quotes.")
            quote = lifecycle.create_quote(form, user, existing_ids=self.store.ids(), now=self._now())
            return self.store.add(quote)

        return self._run("create_quote", None, run)

    def submit_pricing(
        self,
        user: User,
        quote_id: str,
        rows: Sequence[SupplierQuote],
    ) -> ActionResult:
        def run():
            quote = self.store.require(quote_id)
            self._require(
                visibility.can_price(user, quote),
                f"{user.role.value} cannot price quote {quote_id} in {quote.status.value}.",
            )
            if user.role.is_pricing and quote.assigned_pricing_role != user.role:
                raise AuthorizationError(
                    f"Quote {quote_id} belongs to {quote.assigned_pricing_role.value}."
                )
            priced = lifecycle.submit_pricing(
                quote, rows, now=self._now(), min_valid=self.config.MIN_SUPPLIER_QUOTES
            )
            return self.store.replace(priced)

        return self._run("submit_pricing", quote_id, run)

    def submit_sales_proposal(
        self,
        user: User,
        quote_id: str,
        options: Sequence[SupplierQuote],
    ) -> ActionResult:
        def run():
            quote = self.store.require(quote_id)
            self._require(
                visibility.can_propose(user, quote),
                f"{user.role.value} cannot propose on quote {quote_id} in {quote.status.value}.",
            )
            self._require(visibility.is_visible(quote, user), f"Quote {quote_id} is not yours.")
            proposed = lifecycle.submit_sales_proposal(quote, options, now=self._now())
            return self.store.replace(proposed)

        return self._run("submit_sales_proposal", quote_id, run)

    def change_status(self, user: User, quote_id: str, new_status: QuoteStatus) -> ActionResult:
        def run():
            quote = self.store.require(quote_id)
            self._require(
                visibility.can_change_status(user, quote),
                f"{user.role.value} cannot change the status of {quote_id}.",
            )
            self._require(visibility.is_visible(quote, user), f"Quote {quote_id} is not yours.")
            changed = lifecycle.change_status(
                quote, new_status, now=self._now(), strict=self.config.STRICT_STATUS_TRANSITIONS
            )
            return self.store.replace(changed)

        return self._run("change_status", quote_id, run)

    def cancel_quote(self, user: User, quote_id: str) -> ActionResult:
        def run():
            quote = self.store.require(quote_id)
            self._require(visibility.can_cancel(user), f"{user.role.value} cannot cancel quotes.")
            self._require(visibility.is_visible(quote, user), f"Quote {quote_id} is not yours.")
            cancelled = lifecycle.cancel_quote(
                quote, now=self._now(), strict=self.config.STRICT_STATUS_TRANSITIONS
            )
            return self.store.replace(cancelled)

        return self._run("cancel_quote", quote_id, run)

    def edit_quote(self, user: User, quote_id: str, form: QuoteForm) -> ActionResult:
        def run():
            self._require(visibility.can_edit(user), "Only management can edit quotes.")
            quote = self.store.require(quote_id)
            return self.store.replace(lifecycle.edit_quote(quote, form))

        return self._run("edit_quote", quote_id, run)

    def get_metrics(self) -> Dict[str, int]:
        """Get action metrics."""
        return self._metrics.copy()
