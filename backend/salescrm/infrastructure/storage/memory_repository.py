"""
In-Memory Contact Repository
Process-local ContactRepository used when no database is configured
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar

from salescrm.domain.errors import (
    CapacityExceededError,
    DuplicateContactError,
    DuplicateRecordError,
    RecordNotFoundError,
)
from salescrm.domain.interfaces.contact_repository import ContactRepository
from salescrm.domain.models.advisor import Advisor
from salescrm.domain.models.contact import Contact, ContactFilters, ContactStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _Store:
    """Tables. Stored models are replaced on change, never mutated in place."""

    def __init__(self):
        self.contacts: Dict[int, Contact] = {}
        self.advisors: Dict[int, Advisor] = {}
        self.next_contact_id = 1
        self.next_advisor_id = 1

    def snapshot(self) -> tuple:
        return dict(self.contacts), dict(self.advisors), self.next_contact_id, self.next_advisor_id

    def restore(self, snapshot: tuple) -> None:
        self.contacts, self.advisors, self.next_contact_id, self.next_advisor_id = snapshot


class InMemoryContactRepository(ContactRepository):
    """
    Dict-backed repository guarded by an asyncio.Lock.

    Each call holds the lock for its duration; `run_in_transaction` holds it
    for the whole callback and restores a snapshot if the callback raises.
    Data is lost on restart.
    """

    def __init__(self, store: Optional[_Store] = None, lock: Optional[asyncio.Lock] = None, bound: bool = False):
        self._store = store or _Store()
        self._lock = lock or asyncio.Lock()
        self._bound = bound

    @asynccontextmanager
    async def _guard(self) -> AsyncIterator[_Store]:
        if self._bound:
            yield self._store
        else:
            async with self._lock:
                yield self._store

    async def run_in_transaction(self, fn: Callable[[ContactRepository], Awaitable[T]]) -> T:
        if self._bound:
            return await fn(self)
        async with self._lock:
            snapshot = self._store.snapshot()
            try:
                return await fn(InMemoryContactRepository(self._store, self._lock, bound=True))
            except Exception:
                self._store.restore(snapshot)
                logger.debug("In-memory transaction rolled back")
                raise

    # ------------------------------------------------------------------
    # Distribution operations
    # ------------------------------------------------------------------

    async def find_unassigned_contacts(self) -> List[Contact]:
        async with self._guard() as store:
            return [
                c.model_copy() for _, c in sorted(store.contacts.items())
                if c.assigned_advisor_id is None
            ]

    async def find_active_advisors(self) -> List[Advisor]:
        async with self._guard() as store:
            return [a.model_copy() for _, a in sorted(store.advisors.items()) if a.is_active]

    async def set_contact_advisor(self, contact_id: int, advisor_id: int) -> None:
        async with self._guard() as store:
            if advisor_id not in store.advisors:
                raise RecordNotFoundError("Advisor", advisor_id)
            contact = store.contacts.get(contact_id)
            if contact is None:
                raise RecordNotFoundError("Contact", contact_id)
            store.contacts[contact_id] = contact.model_copy(
                update={"assigned_advisor_id": advisor_id, "updated_at": _utcnow()}
            )
        await asyncio.sleep(0)

    async def increment_advisor_load(self, advisor_id: int, delta: int = 1) -> None:
        async with self._guard() as store:
            advisor = store.advisors.get(advisor_id)
            if advisor is None:
                raise RecordNotFoundError("Advisor", advisor_id)
            new_count = advisor.current_contact_count + delta
            if new_count > advisor.max_contacts or new_count < 0:
                raise CapacityExceededError(advisor_id)
            store.advisors[advisor_id] = advisor.model_copy(update={"current_contact_count": new_count})
        await asyncio.sleep(0)

    # ------------------------------------------------------------------
    # Contacts
    # ------------------------------------------------------------------

    async def create_contact(self, values: Dict[str, Any]) -> Contact:
        async with self._guard() as store:
            phone = values.get("phone")
            if any(c.phone == phone for c in store.contacts.values()):
                raise DuplicateContactError("phone", phone)
            now = _utcnow()
            contact = Contact(id=store.next_contact_id, created_at=now, updated_at=now, **values)
            store.contacts[contact.id] = contact
            store.next_contact_id += 1
            return contact.model_copy()

    async def get_contact(self, contact_id: int) -> Optional[Contact]:
        async with self._guard() as store:
            contact = store.contacts.get(contact_id)
            return contact.model_copy() if contact else None

    async def find_contact_by_phone(self, phone: str) -> Optional[Contact]:
        async with self._guard() as store:
            for _, contact in sorted(store.contacts.items()):
                if contact.phone == phone:
                    return contact.model_copy()
            return None

    async def find_contact_by_email(self, email: str) -> Optional[Contact]:
        async with self._guard() as store:
            for _, contact in sorted(store.contacts.items()):
                if contact.email and contact.email.lower() == email.lower():
                    return contact.model_copy()
            return None

    async def list_contacts(
        self,
        filters: Optional[ContactFilters] = None,
        offset: int = 0,
        limit: Optional[int] = None
    ) -> Tuple[List[Contact], int]:
        async with self._guard() as store:
            contacts = [c for c in store.contacts.values() if self._matches(c, filters)]

        contacts.sort(key=lambda c: (c.created_at or _EPOCH, c.id), reverse=True)
        total = len(contacts)
        end = offset + limit if limit is not None else None
        return [c.model_copy() for c in contacts[offset:end]], total

    @staticmethod
    def _matches(contact: Contact, filters: Optional[ContactFilters]) -> bool:
        if filters is None:
            return True
        if filters.status is not None and contact.status != ContactStatus(filters.status).value:
            return False
        if filters.unassigned_only:
            if contact.assigned_advisor_id is not None:
                return False
        elif filters.assigned_advisor_id is not None and contact.assigned_advisor_id != filters.assigned_advisor_id:
            return False
        if filters.is_suspicious is not None and contact.is_suspicious != filters.is_suspicious:
            return False
        if filters.min_quality_score is not None and contact.quality_score < filters.min_quality_score:
            return False
        return True

    async def list_contacts_by_ids(self, contact_ids: List[int]) -> List[Contact]:
        async with self._guard() as store:
            return [store.contacts[cid].model_copy() for cid in contact_ids if cid in store.contacts]

    async def update_contact(self, contact_id: int, values: Dict[str, Any]) -> Contact:
        async with self._guard() as store:
            contact = store.contacts.get(contact_id)
            if contact is None:
                raise RecordNotFoundError("Contact", contact_id)
            phone = values.get("phone")
            if phone is not None and any(
                c.phone == phone and c.id != contact_id for c in store.contacts.values()
            ):
                raise DuplicateContactError("phone", phone)
            updated = contact.model_copy(update={**values, "updated_at": _utcnow()})
            store.contacts[contact_id] = updated
            return updated.model_copy()

    async def record_interaction(
        self,
        contact_id: int,
        at: datetime,
        status: Optional[ContactStatus] = None,
        notes: Optional[str] = None
    ) -> Contact:
        async with self._guard() as store:
            contact = store.contacts.get(contact_id)
            if contact is None:
                raise RecordNotFoundError("Contact", contact_id)
            changes: Dict[str, Any] = {
                "contact_count": contact.contact_count + 1,
                "last_contact_date": at,
                "updated_at": _utcnow(),
            }
            if status is not None:
                changes["status"] = ContactStatus(status).value
            if notes is not None:
                changes["notes"] = notes
            updated = contact.model_copy(update=changes)
            store.contacts[contact_id] = updated
            return updated.model_copy()

    # ------------------------------------------------------------------
    # Advisors
    # ------------------------------------------------------------------

    async def create_advisor(self, values: Dict[str, Any]) -> Advisor:
        async with self._guard() as store:
            email = values.get("email") or ""
            if any(a.email.lower() == email.lower() for a in store.advisors.values()):
                raise DuplicateRecordError("advisor", "email", email)
            advisor = Advisor(id=store.next_advisor_id, created_at=_utcnow(), **values)
            store.advisors[advisor.id] = advisor
            store.next_advisor_id += 1
            return advisor.model_copy()

    async def get_advisor(self, advisor_id: int) -> Optional[Advisor]:
        async with self._guard() as store:
            advisor = store.advisors.get(advisor_id)
            return advisor.model_copy() if advisor else None

    async def find_advisor_by_email(self, email: str) -> Optional[Advisor]:
        async with self._guard() as store:
            for _, advisor in sorted(store.advisors.items()):
                if advisor.email.lower() == email.lower():
                    return advisor.model_copy()
            return None

    async def list_advisors(self, include_inactive: bool = True) -> List[Advisor]:
        async with self._guard() as store:
            return [
                a.model_copy() for _, a in sorted(store.advisors.items())
                if include_inactive or a.is_active
            ]

    async def update_advisor(self, advisor_id: int, values: Dict[str, Any]) -> Advisor:
        async with self._guard() as store:
            advisor = store.advisors.get(advisor_id)
            if advisor is None:
                raise RecordNotFoundError("Advisor", advisor_id)
            updated = advisor.model_copy(update=values)
            store.advisors[advisor_id] = updated
            return updated.model_copy()
