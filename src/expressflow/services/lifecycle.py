# =============================================================================
# FILE: src/expressflow/services/lifecycle.py
# Quote lifecycle: create, price, propose, change status, edit
# =============================================================================

import logging
import re
from datetime import datetime, time, timezone
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from expressflow.clock import resolve_now
from expressflow.config import settings
from expressflow.exceptions import (
    PricingValidationError,
    QuoteValidationError,
    StatusTransitionError,
)
from expressflow.models.quote import (
    CargoType,
    Incoterm,
    ModalType,
    QuoteForm,
    QuoteRequest,
    QuoteStatus,
    Role,
    SupplierQuote,
)
from expressflow.models.user import User
from expressflow.services.calculations import compute_cargo_items, count_valid_rows

logger = logging.getLogger(__name__)

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")

# Required form fields -> message shown to the user
REQUIRED_FIELDS = {
    "client_name": "Client name is required",
    "modal_main": "Main modal is required",
    "operation_type": "Operation type is required",
    "incoterm": "Incoterm is required",
    "created_date": "Receipt date is required",
    "created_time": "Receipt time is required",
}

# Permitted status moves when strict transitions are enabled
STATUS_TRANSITIONS: Dict[QuoteStatus, FrozenSet[QuoteStatus]] = {
    QuoteStatus.PENDING_PRICING: frozenset({
        QuoteStatus.PRICED,
        QuoteStatus.REVALIDATION_REQ,
        QuoteStatus.CANCELLED,
    }),
    QuoteStatus.PRICED: frozenset({
        QuoteStatus.PENDING_SALE,
        QuoteStatus.CLOSED_WON,
        QuoteStatus.CLOSED_LOST,
        QuoteStatus.REVALIDATION_REQ,
        QuoteStatus.CANCELLED,
    }),
    QuoteStatus.PENDING_SALE: frozenset({
        QuoteStatus.CLOSED_WON,
        QuoteStatus.CLOSED_LOST,
        QuoteStatus.REVALIDATION_REQ,
        QuoteStatus.CANCELLED,
    }),
    QuoteStatus.REVALIDATION_REQ: frozenset({
        QuoteStatus.PENDING_PRICING,
        QuoteStatus.PENDING_SALE,
        QuoteStatus.CLOSED_WON,
        QuoteStatus.CLOSED_LOST,
        QuoteStatus.CANCELLED,
    }),
    QuoteStatus.CLOSED_WON: frozenset(),
    QuoteStatus.CLOSED_LOST: frozenset(),
    QuoteStatus.CANCELLED: frozenset(),
}


# -------- derivations --------
def derive_role(modal: ModalType) -> Role:
    """Pricing desk responsible for a modal. Anything not air or sea goes to road."""
    if modal.is_air:
        return Role.PRICING_AIR
    if modal.is_sea:
        return Role.PRICING_SEA
    return Role.PRICING_ROAD


def derive_cargo_type(modal: ModalType) -> CargoType:
    if modal.is_air:
        return CargoType.AIR
    if modal.is_fcl:
        return CargoType.FCL
    return CargoType.LCL


def route_requirements(modal: Optional[ModalType], incoterm: Optional[Incoterm]) -> Dict[str, bool]:
    """Which routing fields apply to a modal/incoterm combination."""
    is_road = bool(modal and modal.is_road)
    return {
        "pickup_address": is_road or incoterm in (Incoterm.EXW, Incoterm.FCA),
        "delivery_address": is_road or incoterm in (Incoterm.DAP, Incoterm.DDP),
        "ports": bool(modal and (modal.is_air or modal.is_sea)),
    }


def _parse_time(value: str) -> Optional[time]:
    match = _TIME_RE.match(value.strip())
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return None
    return time(hour, minute)


def receipt_datetime(form: QuoteForm) -> datetime:
    """SLA start built from the receipt date and time typed on the form."""
    return datetime.combine(form.created_date, _parse_time(form.created_time), tzinfo=timezone.utc)


# -------- validation --------
def validate_quote_form(form: QuoteForm) -> Tuple[bool, List[str]]:
    """
    Validate a new/edit quote form.
    Returns (is_valid, list of error messages).
    """
    errors = []

    for field, message in REQUIRED_FIELDS.items():
        if getattr(form, field) is None:
            errors.append(message)

    if form.created_time is not None and _parse_time(form.created_time) is None:
        errors.append(f"Receipt time must be HH:MM, got {form.created_time!r}")

    return len(errors) == 0, errors


def _require_valid(form: QuoteForm) -> None:
    is_valid, errors = validate_quote_form(form)
    if not is_valid:
        raise QuoteValidationError("Please fill in all required fields.", errors)


# -------- ids --------
def generate_quote_id(
    existing_ids: Iterable[str] = (),
    now: Optional[datetime] = None,
    prefix: Optional[str] = None,
) -> str:
    """
    Next id in the form <prefix>-<seq>-<MM>-<YY>.

    The sequence is one past the highest sequence already used, so ids stay
    unique within a store.
    """
    now = resolve_now(now)
    prefix = prefix or settings.QUOTE_ID_PREFIX

    highest = settings.QUOTE_SEQ_START
    for quote_id in existing_ids:
        parts = quote_id.split("-")
        if len(parts) >= 2 and parts[0] == prefix and parts[1].isdigit():
            highest = max(highest, int(parts[1]))

    return f"{prefix}-{highest + 1}-{now.month:02d}-{now.year % 100:02d}"


# -------- transitions --------
def create_quote(
    form: QuoteForm,
    requester: User,
    existing_ids: Iterable[str] = (),
    now: Optional[datetime] = None,
) -> QuoteRequest:
    """New quote in PENDING_PRICING, routed to the pricing desk of its main modal."""
    _require_valid(form)
    now = resolve_now(now)

    quote = QuoteRequest(
        id=generate_quote_id(existing_ids, now),
        client_name=form.client_name,
        client_ref=form.client_ref or "",
        operation_type=form.operation_type,
        modal_main=form.modal_main,
        modal_sec=form.modal_sec,
        incoterm=form.incoterm,
        created_date=receipt_datetime(form),
        created_time=form.created_time,
        sent_to_pricing_at=now,
        origin_country=form.origin_country or "",
        dest_country=form.dest_country or "",
        pol_aol=form.pol_aol or "",
        pod_aod=form.pod_aod or "",
        pickup_address=form.pickup_address,
        delivery_address=form.delivery_address,
        cargo_type=derive_cargo_type(form.modal_main),
        cargo_items=compute_cargo_items(form.cargo_items, form.modal_main),
        container_items=list(form.container_items),
        status=QuoteStatus.PENDING_PRICING,
        requester_id=requester.id,
        assigned_pricing_role=derive_role(form.modal_main),
        pricing_options=[],
        observation=form.observation or "",
        has_insurance=bool(form.has_insurance),
        cargo_value=form.cargo_value,
    )
    logger.info(f"Created quote {quote.id} for {quote.client_name} -> {quote.assigned_pricing_role.value}")
    return quote


def _rebuild_rows(rows: Sequence[SupplierQuote]) -> List[SupplierQuote]:
    """Fresh copies with all-in, sales total and profit recomputed from their inputs."""
    return [SupplierQuote.model_validate(row.model_dump()) for row in rows]


def submit_pricing(
    quote: QuoteRequest,
    rows: Sequence[SupplierQuote],
    now: Optional[datetime] = None,
    min_valid: Optional[int] = None,
) -> QuoteRequest:
    """Attach supplier rates. Needs at least `min_valid` named rows with all-in > 0."""
    required = settings.MIN_SUPPLIER_QUOTES if min_valid is None else min_valid
    rows = _rebuild_rows(rows)
    valid = count_valid_rows(rows)
    if valid < required:
        raise PricingValidationError(
            f"At least {required} supplier quotes with a supplier name and "
            f"all-in value above zero are required ({valid} given)."
        )

    priced = quote.model_copy(update={
        "status": QuoteStatus.PRICED,
        "pricing_options": rows,
        "priced_at": resolve_now(now),
    })
    logger.info(f"Quote {quote.id} priced with {len(rows)} options ({valid} valid)")
    return priced


def submit_sales_proposal(
    quote: QuoteRequest,
    options: Sequence[SupplierQuote],
    now: Optional[datetime] = None,
) -> QuoteRequest:
    proposed = quote.model_copy(update={
        "status": QuoteStatus.PENDING_SALE,
        "pricing_options": _rebuild_rows(options),
        "proposal_saved_at": resolve_now(now),
    })
    logger.info(f"Sales proposal saved for {quote.id}")
    return proposed


def is_transition_allowed(current: QuoteStatus, new: QuoteStatus) -> bool:
    return current == new or new in STATUS_TRANSITIONS.get(current, frozenset())


def change_status(
    quote: QuoteRequest,
    new_status: QuoteStatus,
    now: Optional[datetime] = None,
    strict: Optional[bool] = None,
) -> QuoteRequest:
    """
    Overwrite the status and stamp lastStatusChange.

    Any move is accepted unless strict transitions are on, in which case
    only the moves in STATUS_TRANSITIONS are.
    """
    try:
        new_status = QuoteStatus(new_status)
    except ValueError:
        raise StatusTransitionError(f"Unknown status {new_status!r}") from None
    strict = settings.STRICT_STATUS_TRANSITIONS if strict is None else strict
    if strict and not is_transition_allowed(quote.status, new_status):
        raise StatusTransitionError(
            f"Quote {quote.id} cannot move from {quote.status.value} to {new_status.value}"
        )

    logger.info(f"Quote {quote.id}: {quote.status.value} -> {new_status.value}")
    return quote.model_copy(update={
        "status": new_status,
        "last_status_change": resolve_now(now),
    })


def cancel_quote(
    quote: QuoteRequest,
    now: Optional[datetime] = None,
    strict: Optional[bool] = None,
) -> QuoteRequest:
    return change_status(quote, QuoteStatus.CANCELLED, now=now, strict=strict)


def edit_quote(quote: QuoteRequest, form: QuoteForm) -> QuoteRequest:
    """
    Management edit of the descriptive fields.

    id, status, requester, stage timestamps and pricing options are kept
    as they are. Desk, cargo type and cargo measures follow the new modal,
    and the SLA start follows the receipt date/time on the form.
    """
    _require_valid(form)

    edited = quote.model_copy(update={
        "client_name": form.client_name,
        "client_ref": form.client_ref or "",
        "operation_type": form.operation_type,
        "modal_main": form.modal_main,
        "modal_sec": form.modal_sec,
        "incoterm": form.incoterm,
        "created_date": receipt_datetime(form),
        "created_time": form.created_time,
        "origin_country": form.origin_country or "",
        "dest_country": form.dest_country or "",
        "pol_aol": form.pol_aol or "",
        "pod_aod": form.pod_aod or "",
        "pickup_address": form.pickup_address,
        "delivery_address": form.delivery_address,
        "cargo_type": derive_cargo_type(form.modal_main),
        "cargo_items": compute_cargo_items(form.cargo_items, form.modal_main),
        "container_items": list(form.container_items),
        "assigned_pricing_role": derive_role(form.modal_main),
        "observation": form.observation or "",
        "has_insurance": bool(form.has_insurance),
        "cargo_value": form.cargo_value,
    })
    logger.info(f"Quote {quote.id} edited")
    return edited
