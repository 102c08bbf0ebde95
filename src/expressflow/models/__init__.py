# Models package
from .quote import (
    CamelModel,
    Role,
    QuoteStatus,
    ModalType,
    Incoterm,
    OperationType,
    CargoType,
    CargoItem,
    ContainerItem,
    SupplierQuote,
    QuoteRequest,
    QuoteForm,
)
from .user import User

__all__ = [
    "CamelModel",
    "Role",
    "QuoteStatus",
    "ModalType",
    "Incoterm",
    "OperationType",
    "CargoType",
    "CargoItem",
    "ContainerItem",
    "SupplierQuote",
    "QuoteRequest",
    "QuoteForm",
    "User",
]
