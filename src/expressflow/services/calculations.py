# =============================================================================
# FILE: src/expressflow/services/calculations.py
# Derived values for supplier rates and cargo lines
# =============================================================================

from datetime import datetime
from typing import Dict, Any, List, Optional, Sequence

from expressflow.clock import as_utc, resolve_now
from expressflow.models.quote import CargoItem, ModalType, QuoteRequest, SupplierQuote


# ======== Supplier rows (pricing side) ========
def new_supplier_row(now: Optional[datetime] = None, currency: str = "USD") -> SupplierQuote:
    """Blank supplier row. The response timer starts as soon as the row exists."""
    return SupplierQuote(currency=currency, requested_at=resolve_now(now))


def apply_supplier_edit(
    row: SupplierQuote,
    changes: Dict[str, Any],
    now: Optional[datetime] = None,
) -> SupplierQuote:
    """
    Apply form changes to a supplier row and recompute its all-in value.

    respondedAt is stamped automatically the first time the all-in value
    becomes positive on a row whose timer was started. After that it is
    only changed through `set_response_time`.
    """
    data = row.model_dump()
    data.update(changes)
    updated = SupplierQuote.model_validate(data)

    if updated.all_in_value > 0 and updated.requested_at and not updated.responded_at:
        updated.responded_at = resolve_now(now)
    return updated


def set_response_time(row: SupplierQuote, responded_at: datetime) -> SupplierQuote:
    return row.model_copy(update={"responded_at": responded_at})


# ======== Supplier rows (sales side) ========
def prepare_sales_options(options: Sequence[SupplierQuote]) -> List[SupplierQuote]:
    """Sales columns start at zero for rows that never had a sell rate."""
    prepared = []
    for opt in options:
        data = opt.model_dump()
        for field in ("sales_freight_rate", "sales_origin_charges", "sales_destination_charges"):
            if data.get(field) is None:
                data[field] = 0.0
        prepared.append(SupplierQuote.model_validate(data))
    return prepared


def apply_sales_edit(row: SupplierQuote, changes: Dict[str, Any]) -> SupplierQuote:
    """Apply sell-rate changes; sales total and profit follow from validation."""
    allowed = {"sales_freight_rate", "sales_origin_charges", "sales_destination_charges"}
    unknown = set(changes) - allowed
    if unknown:
        raise ValueError(f"Not a sales field: {', '.join(sorted(unknown))}")
    data = row.model_dump()
    data.update(changes)
    return SupplierQuote.model_validate(data)


# ======== Option ranking ========
def count_valid_rows(rows: Sequence[SupplierQuote]) -> int:
    return sum(1 for r in rows if r.is_valid_rate)


def lowest_all_in(rows: Sequence[SupplierQuote]) -> Optional[float]:
    values = [r.all_in_value for r in rows if r.is_valid_rate]
    return min(values) if values else None


def best_option_indexes(rows: Sequence[SupplierQuote]) -> List[int]:
    """Indexes of the rows flagged as best option (lowest valid all-in)."""
    best = lowest_all_in(rows)
    if best is None:
        return []
    return [i for i, r in enumerate(rows) if r.is_valid_rate and r.all_in_value == best]


def best_option_profit(quote: QuoteRequest) -> float:
    """Profit of a quote: highest estimated profit across its options, never below 0."""
    return max([0.0] + [opt.estimated_profit or 0.0 for opt in quote.pricing_options])


# ======== Cargo ========
def compute_cargo_item(item: CargoItem, modal: Optional[ModalType]) -> CargoItem:
    return item.with_measures(modal)


def compute_cargo_items(items: Sequence[CargoItem], modal: Optional[ModalType]) -> List[CargoItem]:
    return [compute_cargo_item(item, modal) for item in items]


def apply_cargo_edit(
    item: CargoItem,
    changes: Dict[str, Any],
    modal: Optional[ModalType],
) -> CargoItem:
    data = item.model_dump()
    data.update(changes)
    return compute_cargo_item(CargoItem.model_validate(data), modal)


def total_volume(quote: QuoteRequest) -> float:
    return round(sum(item.volume or 0.0 for item in quote.cargo_items), 4)


def total_chargeable_weight(quote: QuoteRequest) -> float:
    return round(sum(item.chargeable_weight or 0.0 for item in quote.cargo_items), 2)


# ======== Display helpers ========
def format_response_time(
    requested_at: Optional[datetime],
    responded_at: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> str:
    """Supplier response time: '-', 'N min' under an hour, 'Xh Ym' otherwise."""
    if not requested_at:
        return "-"
    start = as_utc(requested_at)
    end = as_utc(responded_at) if responded_at else resolve_now(now)
    if end < start:
        return "invalid (response before request)"

    diff_mins = int((end - start).total_seconds() // 60)
    if diff_mins < 60:
        return f"{diff_mins} min"
    return f"{diff_mins // 60}h {diff_mins % 60}m"
