# =============================================================================
# FILE: src/expressflow/services/visibility.py
# Which quotes a collaborator sees and which actions they are offered
# =============================================================================

from datetime import datetime
from enum import Enum
from typing import List, Optional, Sequence, Union

from expressflow.models.quote import QuoteRequest, QuoteStatus, Role
from expressflow.models.user import User
from expressflow.services.sla import calculate_sla

FILTER_ALL = "ALL"
FILTER_OVERDUE = "OVERDUE"

StatusFilter = Union[QuoteStatus, str]

# Statuses offered by the status selector on the quote list
STATUS_CONTROL_OPTIONS = (
    QuoteStatus.PENDING_SALE,
    QuoteStatus.CLOSED_WON,
    QuoteStatus.CLOSED_LOST,
    QuoteStatus.CANCELLED,
)

_AWAITING_SALES = (QuoteStatus.PRICED, QuoteStatus.PENDING_SALE)

_STATUS_CONTROL_STATES = (
    QuoteStatus.PRICED,
    QuoteStatus.PENDING_SALE,
    QuoteStatus.CLOSED_WON,
    QuoteStatus.CLOSED_LOST,
    QuoteStatus.REVALIDATION_REQ,
)


class QuoteAction(str, Enum):
    PRICING_TASK = "PRICING_TASK"
    SALES_PROPOSAL = "SALES_PROPOSAL"
    LIST = "LIST"


# -------- role filter --------
def is_visible(quote: QuoteRequest, user: User) -> bool:
    if user.role in (Role.MANAGEMENT, Role.INSIDE_SALES):
        return True
    if user.role == Role.SALES:
        return quote.requester_id == user.id
    if user.role.is_pricing:
        return quote.assigned_pricing_role == user.role
    return False


def visible_quotes(quotes: Sequence[QuoteRequest], user: User) -> List[QuoteRequest]:
    return [q for q in quotes if is_visible(q, user)]


# -------- status filter --------
def matches_status_filter(
    quote: QuoteRequest,
    status_filter: StatusFilter,
    now: Optional[datetime] = None,
) -> bool:
    value = status_filter.value if isinstance(status_filter, QuoteStatus) else str(status_filter)
    if value == FILTER_ALL:
        return True
    if value == FILTER_OVERDUE:
        return calculate_sla(quote.created_date, now=now).is_overdue
    if value == QuoteStatus.PENDING_SALE.value:
        return quote.status in _AWAITING_SALES
    return quote.status.value == value


def apply_status_filter(
    quotes: Sequence[QuoteRequest],
    status_filter: StatusFilter = FILTER_ALL,
    now: Optional[datetime] = None,
) -> List[QuoteRequest]:
    return [q for q in quotes if matches_status_filter(q, status_filter, now)]


def filter_quotes(
    quotes: Sequence[QuoteRequest],
    user: User,
    status_filter: StatusFilter = FILTER_ALL,
    now: Optional[datetime] = None,
) -> List[QuoteRequest]:
    """Role filter with the status filter layered on top."""
    return apply_status_filter(visible_quotes(quotes, user), status_filter, now)


# -------- action predicates --------
def _is_sales_or_management(user: User) -> bool:
    return user.role.is_sales or user.role == Role.MANAGEMENT


def can_create(user: User) -> bool:
    return _is_sales_or_management(user)


def can_view_pricing_tasks(user: User) -> bool:
    return user.role.is_pricing or user.role == Role.MANAGEMENT


def can_price(user: User, quote: QuoteRequest) -> bool:
    return can_view_pricing_tasks(user) and quote.status == QuoteStatus.PENDING_PRICING


def can_propose(user: User, quote: QuoteRequest) -> bool:
    return _is_sales_or_management(user) and quote.status in _AWAITING_SALES


def can_change_status(user: User, quote: QuoteRequest) -> bool:
    return _is_sales_or_management(user) and quote.status in _STATUS_CONTROL_STATES


def can_cancel(user: User) -> bool:
    return _is_sales_or_management(user)


def can_edit(user: User) -> bool:
    return user.role == Role.MANAGEMENT


def can_manage_team(user: User) -> bool:
    return user.role == Role.MANAGEMENT


def resolve_quote_action(user: User, quote: QuoteRequest) -> QuoteAction:
    """What opening a quote leads to for this user."""
    if can_price(user, quote):
        return QuoteAction.PRICING_TASK
    if can_propose(user, quote):
        return QuoteAction.SALES_PROPOSAL
    return QuoteAction.LIST
