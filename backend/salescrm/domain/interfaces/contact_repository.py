"""
Contact Repository Interface
Storage operations the scoring and distribution services depend on
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar

from salescrm.domain.models.advisor import Advisor
from salescrm.domain.models.contact import Contact, ContactFilters, ContactStatus

T = TypeVar("T")


class ContactRepository(ABC):
    """
    Abstract storage for contacts and advisors.

    Every method runs in its own unit of work unless it is called on the
    repository handed to a `run_in_transaction` callback, in which case all
    calls share that transaction and are committed or rolled back together.

    Mutators raise RecordNotFoundError for unknown ids.
    """

    # ------------------------------------------------------------------
    # Distribution operations
    # ------------------------------------------------------------------

    @abstractmethod
    async def find_unassigned_contacts(self) -> List[Contact]:
        """Contacts with no assigned advisor"""
        pass

    @abstractmethod
    async def find_active_advisors(self) -> List[Advisor]:
        """Advisors with is_active=True"""
        pass

    @abstractmethod
    async def set_contact_advisor(self, contact_id: int, advisor_id: int) -> None:
        """Point a contact at an advisor"""
        pass

    @abstractmethod
    async def increment_advisor_load(self, advisor_id: int, delta: int = 1) -> None:
        """
        Atomically add `delta` to an advisor's current_contact_count.

        Raises:
            CapacityExceededError: If the result would exceed max_contacts
        """
        pass

    @abstractmethod
    async def run_in_transaction(self, fn: Callable[["ContactRepository"], Awaitable[T]]) -> T:
        """
        Run `fn` with a repository bound to a single transaction.

        Commits when `fn` returns, rolls back and re-raises when it raises.
        """
        pass

    # ------------------------------------------------------------------
    # Contacts
    # ------------------------------------------------------------------

    @abstractmethod
    async def create_contact(self, values: Dict[str, Any]) -> Contact:
        pass

    @abstractmethod
    async def get_contact(self, contact_id: int) -> Optional[Contact]:
        pass

    @abstractmethod
    async def find_contact_by_phone(self, phone: str) -> Optional[Contact]:
        pass

    @abstractmethod
    async def find_contact_by_email(self, email: str) -> Optional[Contact]:
        pass

    @abstractmethod
    async def list_contacts(
        self,
        filters: Optional[ContactFilters] = None,
        offset: int = 0,
        limit: Optional[int] = None
    ) -> Tuple[List[Contact], int]:
        """Matching contacts (newest first) and the total match count"""
        pass

    @abstractmethod
    async def list_contacts_by_ids(self, contact_ids: List[int]) -> List[Contact]:
        pass

    @abstractmethod
    async def update_contact(self, contact_id: int, values: Dict[str, Any]) -> Contact:
        pass

    @abstractmethod
    async def record_interaction(
        self,
        contact_id: int,
        at: datetime,
        status: Optional[ContactStatus] = None,
        notes: Optional[str] = None
    ) -> Contact:
        """Atomically bump contact_count and stamp last_contact_date"""
        pass

    # ------------------------------------------------------------------
    # Advisors
    # ------------------------------------------------------------------

    @abstractmethod
    async def create_advisor(self, values: Dict[str, Any]) -> Advisor:
        pass

    @abstractmethod
    async def get_advisor(self, advisor_id: int) -> Optional[Advisor]:
        pass

    @abstractmethod
    async def find_advisor_by_email(self, email: str) -> Optional[Advisor]:
        pass

    @abstractmethod
    async def list_advisors(self, include_inactive: bool = True) -> List[Advisor]:
        pass

    @abstractmethod
    async def update_advisor(self, advisor_id: int, values: Dict[str, Any]) -> Advisor:
        pass
