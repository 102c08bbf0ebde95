# =============================================================================
# FILE: src/expressflow/services/store.py
# In-memory quote and collaborator collections backed by a persistence port
# =============================================================================

import logging
from typing import Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError as PydanticValidationError

from expressflow.exceptions import QuoteNotFoundError, StorageError, UserNotFoundError
from expressflow.models.quote import QuoteRequest
from expressflow.models.user import User
from expressflow.services.persistence import PersistencePort

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

# Names shown for ids that are not in the directory
FIXED_USER_NAMES = {
    "user-0": "Admin Root",
    "admin-root": "Super Administrador",
}
UNKNOWN_USER_NAME = "Colaborador"


class _Collection(Generic[RecordT]):
    """
    Ordered list of records kept in memory and written through on every change.

    A failed write is logged and otherwise ignored: the in-memory list stays
    the source of truth for the running process.
    """

    record_type: Type[BaseModel]
    label = "records"

    def __init__(self, port: PersistencePort):
        self.port = port
        self._adapter = TypeAdapter(List[self.record_type])
        self._records: List[RecordT] = []

    def load(self) -> List[RecordT]:
        try:
            payload = self.port.load()
        except StorageError as e:
            logger.error(f"Failed to load {self.label}: {e}")
            payload = None

        if payload:
            try:
                self._records = list(self._adapter.validate_json(payload))
            except PydanticValidationError as e:
                logger.error(f"Discarding unreadable {self.label}: {e.error_count()} errors")
                self._records = []
        else:
            self._records = []

        logger.info(f"Loaded {len(self._records)} {self.label}")
        return list(self._records)

    def save(self) -> bool:
        payload = self._adapter.dump_json(self._records, by_alias=True).decode("utf-8")
        try:
            self.port.save(payload)
        except StorageError as e:
            logger.error(f"Failed to persist {self.label}: {e}")
            return False
        return True

    def all(self) -> List[RecordT]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)


class QuoteStore(_Collection[QuoteRequest]):
    """Quotes, newest first. Quotes are never deleted."""

    record_type = QuoteRequest
    label = "quotes"

    def get(self, quote_id: str) -> Optional[QuoteRequest]:
        for quote in self._records:
            if quote.id == quote_id:
                return quote
        return None

    def require(self, quote_id: str) -> QuoteRequest:
        quote = self.get(quote_id)
        if quote is None:
            raise QuoteNotFoundError(f"Quote {quote_id} not found")
        return quote

    def ids(self) -> List[str]:
        return [q.id for q in self._records]

    def add(self, quote: QuoteRequest) -> QuoteRequest:
        self._records.insert(0, quote)
        self.save()
        return quote

    def replace(self, quote: QuoteRequest) -> QuoteRequest:
        for idx, existing in enumerate(self._records):
            if existing.id == quote.id:
                self._records[idx] = quote
                self.save()
                return quote
        raise QuoteNotFoundError(f"Quote {quote.id} not found")


class UserDirectory(_Collection[User]):
    """Invited collaborators."""

    record_type = User
    label = "collaborators"

    def get(self, user_id: str) -> Optional[User]:
        for user in self._records:
            if user.id == user_id:
                return user
        return None

    def find_by_email(self, email: str) -> Optional[User]:
        needle = email.strip().lower()
        for user in self._records:
            if user.email.strip().lower() == needle:
                return user
        return None

    def add(self, user: User) -> User:
        self._records.append(user)
        self.save()
        return user

    def replace(self, user: User) -> User:
        for idx, existing in enumerate(self._records):
            if existing.id == user.id:
                self._records[idx] = user
                self.save()
                return user
        raise UserNotFoundError(f"Collaborator {user.id} not found")

    def remove(self, user_id: str) -> bool:
        before = len(self._records)
        self._records = [u for u in self._records if u.id != user_id]
        if len(self._records) == before:
            return False
        self.save()
        return True

    def name_of(self, user_id: str) -> str:
        if user_id in FIXED_USER_NAMES:
            return FIXED_USER_NAMES[user_id]
        user = self.get(user_id)
        return user.name if user else UNKNOWN_USER_NAME

