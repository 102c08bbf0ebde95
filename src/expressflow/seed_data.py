# =============================================================================
# FILE: src/expressflow/seed_data.py
# Demo records loaded into an empty store when SEED_DEMO_DATA is on
# =============================================================================

from datetime import datetime, timedelta
from typing import List, Optional

from expressflow.clock import resolve_now
from expressflow.models.quote import (
    CargoType,
    ContainerItem,
    Incoterm,
    ModalType,
    OperationType,
    QuoteRequest,
    QuoteStatus,
    Role,
)


def initial_quotes(now: Optional[datetime] = None) -> List[QuoteRequest]:
    """One sea FCL quote received 25 hours ago and still waiting for pricing."""
    now = resolve_now(now)
    return [
        QuoteRequest(
            id=f"MTN-1001-{now.month:02d}-{now.year % 100:02d}",
            client_name="Tech Imports Ltd",
            client_ref="IMP-2023-001",
            operation_type=OperationType.IMPORT,
            modal_main=ModalType.SEA_FCL,
            incoterm=Incoterm.FOB,
            created_date=now - timedelta(hours=25),
            created_time="09:00",
            origin_country="China",
            dest_country="Brazil",
            pol_aol="Shanghai",
            pod_aod="Santos",
            cargo_type=CargoType.FCL,
            container_items=[ContainerItem(id="c1", type="40HC", quantity=2)],
            status=QuoteStatus.PENDING_PRICING,
            requester_id="user-0",
            assigned_pricing_role=Role.PRICING_SEA,
        )
    ]
