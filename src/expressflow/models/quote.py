# =============================================================================
# FILE: src/expressflow/models/quote.py
# Quote request, supplier rate and cargo models
# =============================================================================

from datetime import date, datetime
from enum import Enum
from typing import Optional, List, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


# Air volumetric divisor, dimensions in cm
VOLUMETRIC_DIVISOR = 6000


class CamelModel(BaseModel):
    """Base model persisted with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Role(str, Enum):
    SALES = "SALES"
    INSIDE_SALES = "INSIDE_SALES"
    PRICING_SEA = "PRICING_SEA"
    PRICING_AIR = "PRICING_AIR"
    PRICING_ROAD = "PRICING_ROAD"
    MANAGEMENT = "MANAGEMENT"

    @property
    def is_pricing(self) -> bool:
        return self.value.startswith("PRICING")

    @property
    def is_sales(self) -> bool:
        return self in (Role.SALES, Role.INSIDE_SALES)

    @property
    def desk(self) -> str:
        """Pricing desk label, e.g. PRICING_SEA -> SEA."""
        return self.value.replace("PRICING_", "")


class QuoteStatus(str, Enum):
    PENDING_PRICING = "PENDING_PRICING"
    PRICED = "PRICED"
    PENDING_SALE = "PENDING_SALE"
    CLOSED_WON = "CLOSED_WON"
    CLOSED_LOST = "CLOSED_LOST"
    REVALIDATION_REQ = "REVALIDATION_REQ"
    CANCELLED = "CANCELLED"


class ModalType(str, Enum):
    AIR_CIA = "Aéreo Cia"
    AIR_COURIER = "Aéreo Courier"
    SEA_LCL = "Marítimo LCL"
    SEA_FCL = "Marítimo FCL"
    SEA_PROJECT = "Marítimo Projeto"
    ROAD_NATIONAL = "Rodoviário Nacional"
    ROAD_INTL = "Rodoviário Internacional"

    @property
    def is_air(self) -> bool:
        return "Aéreo" in self.value

    @property
    def is_sea(self) -> bool:
        return "Marítimo" in self.value

    @property
    def is_road(self) -> bool:
        return "Rodoviário" in self.value

    @property
    def is_fcl(self) -> bool:
        return "FCL" in self.value

    @property
    def family(self) -> str:
        """Modal family used to group analytics: Marítimo, Aéreo, Rodoviário."""
        return self.value.split(" ")[0]


class Incoterm(str, Enum):
    EXW = "EXW"
    FCA = "FCA"
    FOB = "FOB"
    CFR = "CFR"
    CIF = "CIF"
    DAP = "DAP"
    DDP = "DDP"


class OperationType(str, Enum):
    IMPORT = "Import"
    EXPORT = "Export"


class CargoType(str, Enum):
    FCL = "FCL"
    LCL = "LCL"
    AIR = "AIR"


class CargoItem(CamelModel):
    """Dimensioned cargo line (LCL, air and road). Dimensions in the unit the modal bills by."""
    id: str
    ncm: Optional[str] = None
    qty: int = 1
    length: float = 0.0
    width: float = 0.0
    height: float = 0.0
    weight: float = 0.0
    volume: Optional[float] = None
    chargeable_weight: Optional[float] = None

    def with_measures(self, modal: Optional[ModalType]) -> "CargoItem":
        """
        Copy with the measured value recomputed for the given modal.

        Air: chargeable weight = max(actual, L*W*H/6000) per piece times qty.
        LCL and road: volume = L*W*H times qty, dimensions in metres.
        """
        volume = None
        chargeable = None
        if modal is not None and modal.is_air:
            volumetric = (self.length * self.width * self.height) / VOLUMETRIC_DIVISOR
            chargeable = round(max(self.weight, volumetric) * self.qty, 2)
        elif modal is not None and (modal == ModalType.SEA_LCL or modal.is_road):
            volume = round(self.length * self.width * self.height * self.qty, 4)
        return self.model_copy(update={"volume": volume, "chargeable_weight": chargeable})


class ContainerItem(CamelModel):
    """Container line for FCL shipments."""
    id: str
    type: str = "20ST"
    ncm: Optional[str] = None
    temperature: Optional[str] = None
    quantity: int = 1


class SupplierQuote(CamelModel):
    """
    One carrier/forwarder rate line.

    allInValue, salesTotal and estimatedProfit are always recomputed from the
    charge components when the model is validated. Sales totals stay unset
    until one of the sales components is filled in.
    """
    supplier_name: str = ""
    currency: str = "USD"
    freight_rate: float = 0.0
    origin_charges: float = 0.0
    destination_charges: float = 0.0
    all_in_value: float = 0.0
    requested_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None
    sales_freight_rate: Optional[float] = None
    sales_origin_charges: Optional[float] = None
    sales_destination_charges: Optional[float] = None
    sales_total: Optional[float] = None
    estimated_profit: Optional[float] = None

    @field_validator("freight_rate", "origin_charges", "destination_charges", mode="before")
    @classmethod
    def _blank_is_zero(cls, value: Any) -> Any:
        return 0.0 if value in (None, "") else value

    @field_validator(
        "sales_freight_rate", "sales_origin_charges", "sales_destination_charges", mode="before"
    )
    @classmethod
    def _blank_is_unset(cls, value: Any) -> Any:
        return None if value == "" else value

    @model_validator(mode="after")
    def _recompute_totals(self) -> "SupplierQuote":
        self.all_in_value = self.freight_rate + self.origin_charges + self.destination_charges

        sales = (
            self.sales_freight_rate,
            self.sales_origin_charges,
            self.sales_destination_charges,
        )
        if any(v is not None for v in sales):
            self.sales_total = (sales[0] or 0.0) + (sales[1] or 0.0) + (sales[2] or 0.0)
            self.estimated_profit = self.sales_total - self.all_in_value
        else:
            self.sales_total = None
            self.estimated_profit = None
        return self

    @property
    def is_valid_rate(self) -> bool:
        return self.supplier_name.strip() != "" and self.all_in_value > 0


class QuoteRequest(CamelModel):
    """Freight quote request, the central workflow record."""
    id: str
    client_name: str
    client_ref: str = ""
    operation_type: OperationType
    modal_main: ModalType
    modal_sec: Optional[ModalType] = None
    incoterm: Incoterm
    created_date: datetime
    created_time: str = "00:00"
    pickup_address: Optional[str] = None
    delivery_address: Optional[str] = None
    origin_country: str = ""
    dest_country: str = ""
    pol_aol: str = Field(default="", alias="pol_aol")
    pod_aod: str = Field(default="", alias="pod_aod")
    cargo_type: CargoType
    cargo_items: List[CargoItem] = Field(default_factory=list)
    container_items: List[ContainerItem] = Field(default_factory=list)
    status: QuoteStatus = QuoteStatus.PENDING_PRICING
    requester_id: str
    assigned_pricing_role: Role
    pricing_options: List[SupplierQuote] = Field(default_factory=list)
    sent_to_pricing_at: Optional[datetime] = None
    priced_at: Optional[datetime] = None
    proposal_saved_at: Optional[datetime] = None
    last_status_change: Optional[datetime] = None
    observation: str = ""
    has_insurance: bool = False
    cargo_value: Optional[float] = None

    @property
    def sequence(self) -> str:
        """Sequence part of the id (MTN-1001-12-25 -> 1001)."""
        parts = self.id.split("-")
        return parts[1] if len(parts) >= 2 else self.id

    @model_validator(mode="after")
    def _recompute_cargo_measures(self) -> "QuoteRequest":
        self.cargo_items = [item.with_measures(self.modal_main) for item in self.cargo_items]
        return self


class QuoteForm(CamelModel):
    """
    Raw new/edit quote form. Every field is optional so that missing
    required fields can be reported together instead of failing on the
    first one.
    """
    client_name: Optional[str] = None
    client_ref: Optional[str] = None
    operation_type: Optional[OperationType] = None
    modal_main: Optional[ModalType] = None
    modal_sec: Optional[ModalType] = None
    incoterm: Optional[Incoterm] = None
    created_date: Optional[date] = None
    created_time: Optional[str] = None
    origin_country: Optional[str] = None
    dest_country: Optional[str] = None
    pol_aol: Optional[str] = Field(default=None, alias="pol_aol")
    pod_aod: Optional[str] = Field(default=None, alias="pod_aod")
    pickup_address: Optional[str] = None
    delivery_address: Optional[str] = None
    cargo_items: List[CargoItem] = Field(default_factory=list)
    container_items: List[ContainerItem] = Field(default_factory=list)
    observation: Optional[str] = None
    has_insurance: Optional[bool] = False
    cargo_value: Optional[float] = None

    @field_validator("*", mode="before")
    @classmethod
    def _blank_is_missing(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @field_validator("created_date", mode="before")
    @classmethod
    def _date_part_only(cls, value: Any) -> Any:
        # Edits hand back the stored ISO timestamp
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str) and "T" in value:
            return value.split("T")[0]
        return value
