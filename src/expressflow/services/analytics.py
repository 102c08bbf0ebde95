# =============================================================================
# FILE: src/expressflow/services/analytics.py
# Dashboard and report aggregates over a quote list
# =============================================================================

from collections import Counter
from datetime import date, datetime, time, timezone
from typing import Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from expressflow.clock import as_utc, resolve_now
from expressflow.config import settings
from expressflow.models.quote import ModalType, OperationType, QuoteRequest, QuoteStatus
from expressflow.services.calculations import best_option_profit
from expressflow.services.sla import elapsed_hours

NameResolver = Callable[[str], str]

MODAL_FAMILIES = ("Marítimo", "Aéreo", "Rodoviário")


class DashboardCounts(BaseModel):
    pending_pricing: int = 0
    pending_sale: int = 0
    overdue: int = 0
    revalidation: int = 0


class DrillDownItem(BaseModel):
    id: str
    client: str
    hours: float
    timestamp: datetime


class DurationBucket(BaseModel):
    name: str
    full_name: str
    hours: float
    details: List[DrillDownItem] = Field(default_factory=list)


class ClientStat(BaseModel):
    name: str
    wins: int = 0
    profit: float = 0.0


class ModalStat(BaseModel):
    name: str
    total: int = 0
    won: int = 0
    rate: float = 0.0


class ReportStats(BaseModel):
    total: int
    closed_won: int
    total_profit: float
    conversion_rate: float


class ReportFilter(BaseModel):
    """Dynamic report filter. Empty values do not filter."""
    client: str = ""
    operation_type: Optional[OperationType] = None
    modal: Optional[ModalType] = None
    status: Optional[QuoteStatus] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    requester: str = ""


# ======== helpers ========
def conversion_rate(won: int, total: int) -> float:
    """won/total as a percentage with one decimal; 0.0 when there is nothing to divide."""
    if total <= 0:
        return 0.0
    return round(won / total * 100, 1)


def _in_range(moment: datetime, start: Optional[date], end: Optional[date]) -> bool:
    moment = as_utc(moment)
    if start and moment < datetime.combine(start, time.min, tzinfo=timezone.utc):
        return False
    if end and moment > datetime.combine(end, time(23, 59, 59), tzinfo=timezone.utc):
        return False
    return True


def filter_by_created_range(
    quotes: Sequence[QuoteRequest],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[QuoteRequest]:
    """Quotes received between the start of `start` and the end of `end`."""
    return [q for q in quotes if _in_range(q.created_date, start, end)]


def search_quotes(quotes: Sequence[QuoteRequest], term: str) -> List[QuoteRequest]:
    needle = term.strip().lower()
    if not needle:
        return []
    return [
        q for q in quotes
        if needle in q.id.lower()
        or needle in q.client_name.lower()
        or needle in q.client_ref.lower()
    ]


# ======== status buckets ========
def count_by_status(quotes: Sequence[QuoteRequest]) -> Dict[QuoteStatus, int]:
    counts = Counter(q.status for q in quotes)
    return {status: counts.get(status, 0) for status in QuoteStatus}


def dashboard_counts(
    quotes: Sequence[QuoteRequest],
    now: Optional[datetime] = None,
    threshold_hours: Optional[float] = None,
) -> DashboardCounts:
    now = resolve_now(now)
    threshold = settings.SLA_THRESHOLD_HOURS if threshold_hours is None else threshold_hours
    closed = (QuoteStatus.CLOSED_WON, QuoteStatus.CLOSED_LOST)
    return DashboardCounts(
        pending_pricing=sum(1 for q in quotes if q.status == QuoteStatus.PENDING_PRICING),
        pending_sale=sum(
            1 for q in quotes if q.status in (QuoteStatus.PRICED, QuoteStatus.PENDING_SALE)
        ),
        overdue=sum(
            1 for q in quotes
            if elapsed_hours(q.created_date, now) > threshold
            and q.status not in closed
        ),
        revalidation=sum(1 for q in quotes if q.status == QuoteStatus.REVALIDATION_REQ),
    )


# ======== durations ========
def average_hours(quotes: Sequence[QuoteRequest], start_field: str, end_field: str) -> float:
    """
    Mean hours between two timestamp fields across quotes that have both.
    One decimal; 0.0 when no quote qualifies.
    """
    spans = [
        elapsed_hours(getattr(q, start_field), getattr(q, end_field))
        for q in quotes
        if getattr(q, start_field) and getattr(q, end_field)
    ]
    if not spans:
        return 0.0
    return round(sum(spans) / len(spans), 1)


def _pricing_hours(quotes: Sequence[QuoteRequest]) -> float:
    return average_hours(quotes, "sent_to_pricing_at", "priced_at")


def turnaround_metrics(quotes: Sequence[QuoteRequest]) -> Dict[str, Dict[str, float]]:
    """Average stage durations, overall and per modal/operation segment."""
    air = [q for q in quotes if q.modal_main.is_air]
    sea = [q for q in quotes if q.modal_main.is_sea]
    road = [q for q in quotes if q.modal_main.is_road]

    def pick(group, modal=None, operation=None, exclude=None):
        return [
            q for q in group
            if (modal is None or q.modal_main == modal)
            and (operation is None or q.operation_type == operation)
            and (exclude is None or q.modal_main != exclude)
        ]

    imp, exp = OperationType.IMPORT, OperationType.EXPORT
    return {
        "inside": {
            "receipt_to_request": average_hours(quotes, "created_date", "sent_to_pricing_at"),
            "pricing_time": _pricing_hours(quotes),
        },
        "air": {
            "export": _pricing_hours(pick(air, operation=exp, exclude=ModalType.AIR_COURIER)),
            "import": _pricing_hours(pick(air, operation=imp, exclude=ModalType.AIR_COURIER)),
            "courier": _pricing_hours(pick(air, modal=ModalType.AIR_COURIER)),
        },
        "sea": {
            "lcl_import": _pricing_hours(pick(sea, ModalType.SEA_LCL, imp)),
            "lcl_export": _pricing_hours(pick(sea, ModalType.SEA_LCL, exp)),
            "fcl_import": _pricing_hours(pick(sea, ModalType.SEA_FCL, imp)),
            "fcl_export": _pricing_hours(pick(sea, ModalType.SEA_FCL, exp)),
        },
        "road": {
            "national": _pricing_hours(pick(road, ModalType.ROAD_NATIONAL)),
            "intl_import": _pricing_hours(pick(road, ModalType.ROAD_INTL, imp)),
            "intl_export": _pricing_hours(pick(road, ModalType.ROAD_INTL, exp)),
        },
    }


def _bucket(groups: Dict[str, List[DrillDownItem]], short: Callable[[str], str]) -> List[DurationBucket]:
    buckets = []
    for name, items in groups.items():
        avg = sum(item.hours for item in items) / len(items)
        buckets.append(DurationBucket(
            name=short(name),
            full_name=name,
            hours=round(avg, 1),
            details=items,
        ))
    return buckets


def pricing_time_by_role(quotes: Sequence[QuoteRequest]) -> List[DurationBucket]:
    """Average receipt-to-priced hours per pricing desk."""
    groups: Dict[str, List[DrillDownItem]] = {}
    for q in quotes:
        if q.priced_at and q.created_date:
            groups.setdefault(q.assigned_pricing_role.desk, []).append(DrillDownItem(
                id=q.id,
                client=q.client_name,
                hours=round(elapsed_hours(q.created_date, q.priced_at), 1),
                timestamp=q.priced_at,
            ))
    return _bucket(groups, lambda name: name)


def sales_time_by_requester(
    quotes: Sequence[QuoteRequest],
    name_of: NameResolver,
) -> List[DurationBucket]:
    """Average priced-to-proposal hours per requester, labelled by first name."""
    groups: Dict[str, List[DrillDownItem]] = {}
    for q in quotes:
        if q.proposal_saved_at and q.priced_at:
            groups.setdefault(name_of(q.requester_id), []).append(DrillDownItem(
                id=q.id,
                client=q.client_name,
                hours=round(elapsed_hours(q.priced_at, q.proposal_saved_at), 1),
                timestamp=q.proposal_saved_at,
            ))
    return _bucket(groups, lambda name: name.split(" ")[0])


# ======== clients and modals ========
def client_stats(quotes: Sequence[QuoteRequest]) -> List[ClientStat]:
    """Wins and summed best-option profit per client, in first-seen order."""
    stats: Dict[str, ClientStat] = {}
    for q in quotes:
        stat = stats.setdefault(q.client_name, ClientStat(name=q.client_name))
        if q.status == QuoteStatus.CLOSED_WON:
            stat.wins += 1
        stat.profit += best_option_profit(q)
    return list(stats.values())


def top_clients(stats: Sequence[ClientStat], key: str = "wins", limit: int = 10) -> List[ClientStat]:
    return sorted(stats, key=lambda s: getattr(s, key), reverse=True)[:limit]


def modal_stats(quotes: Sequence[QuoteRequest]) -> List[ModalStat]:
    """Quote count, wins and win rate per modal family; empty families are left out."""
    stats = {family: ModalStat(name=family) for family in MODAL_FAMILIES}
    for q in quotes:
        stat = stats.get(q.modal_main.family)
        if stat is None:
            continue
        stat.total += 1
        if q.status == QuoteStatus.CLOSED_WON:
            stat.won += 1

    result = []
    for stat in stats.values():
        if stat.total > 0:
            stat.rate = conversion_rate(stat.won, stat.total)
            result.append(stat)
    return result


# ======== dynamic report ========
def apply_report_filter(
    quotes: Sequence[QuoteRequest],
    report_filter: ReportFilter,
    name_of: NameResolver,
) -> List[QuoteRequest]:
    f = report_filter
    client = f.client.strip().lower()
    requester = f.requester.strip().lower()

    result = []
    for q in quotes:
        if client and client not in q.client_name.lower():
            continue
        if f.operation_type and q.operation_type != f.operation_type:
            continue
        if f.modal and q.modal_main != f.modal:
            continue
        if f.status and q.status != f.status:
            continue
        if (f.start_date or f.end_date) and not _in_range(q.created_date, f.start_date, f.end_date):
            continue
        if requester and requester not in name_of(q.requester_id).lower():
            continue
        result.append(q)
    return result


def report_stats(quotes: Sequence[QuoteRequest]) -> ReportStats:
    total = len(quotes)
    closed_won = sum(1 for q in quotes if q.status == QuoteStatus.CLOSED_WON)
    return ReportStats(
        total=total,
        closed_won=closed_won,
        total_profit=sum(best_option_profit(q) for q in quotes),
        conversion_rate=conversion_rate(closed_won, total),
    )
