"""
SQLAlchemy Contact Repository
ContactRepository backed by an async SQLAlchemy session
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from salescrm.domain.errors import (
    CapacityExceededError,
    DuplicateContactError,
    DuplicateRecordError,
    RecordNotFoundError,
)
from salescrm.domain.interfaces.contact_repository import ContactRepository
from salescrm.domain.models.advisor import Advisor
from salescrm.domain.models.contact import Contact, ContactFilters, ContactStatus
from salescrm.infrastructure.storage.database import session_scope
from salescrm.infrastructure.storage.models import AdvisorRecord, ContactRecord, utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _to_contact(record: ContactRecord) -> Contact:
    return Contact.model_validate(record, from_attributes=True)


def _to_advisor(record: AdvisorRecord) -> Advisor:
    return Advisor.model_validate(record, from_attributes=True)


class SQLAlchemyContactRepository(ContactRepository):
    """
    Repository over the contacts/advisors tables.

    Unbound instances open one session per call. The instance handed to a
    `run_in_transaction` callback is bound to that transaction's session and
    only flushes; the outer scope commits or rolls back.

    Bulk UPDATE statements run with synchronize_session=False, so reads that
    may follow them in the same session use populate_existing.
    """

    def __init__(self, session_factory: async_sessionmaker, session: Optional[AsyncSession] = None):
        self._session_factory = session_factory
        self._session = session

    @asynccontextmanager
    async def _unit(self) -> AsyncIterator[AsyncSession]:
        if self._session is not None:
            yield self._session
        else:
            async with session_scope(self._session_factory) as session:
                yield session

    async def run_in_transaction(self, fn: Callable[[ContactRepository], Awaitable[T]]) -> T:
        if self._session is not None:
            return await fn(self)
        async with session_scope(self._session_factory) as session:
            return await fn(SQLAlchemyContactRepository(self._session_factory, session=session))

    # ------------------------------------------------------------------
    # Distribution operations
    # ------------------------------------------------------------------

    async def find_unassigned_contacts(self) -> List[Contact]:
        async with self._unit() as session:
            result = await session.execute(
                select(ContactRecord)
                .where(ContactRecord.assigned_advisor_id.is_(None))
                .order_by(ContactRecord.id)
                .execution_options(populate_existing=True)
            )
            return [_to_contact(r) for r in result.scalars().all()]

    async def find_active_advisors(self) -> List[Advisor]:
        async with self._unit() as session:
            result = await session.execute(
                select(AdvisorRecord)
                .where(AdvisorRecord.is_active.is_(True))
                .order_by(AdvisorRecord.id)
                .execution_options(populate_existing=True)
            )
            return [_to_advisor(r) for r in result.scalars().all()]

    async def set_contact_advisor(self, contact_id: int, advisor_id: int) -> None:
        async with self._unit() as session:
            advisor_exists = await session.scalar(
                select(AdvisorRecord.id).where(AdvisorRecord.id == advisor_id)
            )
            if advisor_exists is None:
                raise RecordNotFoundError("Advisor", advisor_id)

            result = await session.execute(
                update(ContactRecord)
                .where(ContactRecord.id == contact_id)
                .values(assigned_advisor_id=advisor_id, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise RecordNotFoundError("Contact", contact_id)

    async def increment_advisor_load(self, advisor_id: int, delta: int = 1) -> None:
        # Single guarded UPDATE: the row lock makes check-and-add atomic
        async with self._unit() as session:
            result = await session.execute(
                update(AdvisorRecord)
                .where(AdvisorRecord.id == advisor_id)
                .where(AdvisorRecord.current_contact_count + delta <= AdvisorRecord.max_contacts)
                .where(AdvisorRecord.current_contact_count + delta >= 0)
                .values(current_contact_count=AdvisorRecord.current_contact_count + delta)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                exists = await session.scalar(
                    select(AdvisorRecord.id).where(AdvisorRecord.id == advisor_id)
                )
                if exists is None:
                    raise RecordNotFoundError("Advisor", advisor_id)
                raise CapacityExceededError(advisor_id)

    # ------------------------------------------------------------------
    # Contacts
    # ------------------------------------------------------------------

    async def _load_contact(self, session: AsyncSession, contact_id: int) -> Optional[ContactRecord]:
        result = await session.execute(
            select(ContactRecord)
            .where(ContactRecord.id == contact_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def create_contact(self, values: Dict[str, Any]) -> Contact:
        async with self._unit() as session:
            record = ContactRecord(**values)
            session.add(record)
            try:
                await session.flush()
            except IntegrityError as e:
                logger.warning(f"Contact insert rejected by unique constraint: {e.orig}")
                raise DuplicateContactError("phone", values.get("phone"))
            await session.refresh(record)
            return _to_contact(record)

    async def get_contact(self, contact_id: int) -> Optional[Contact]:
        async with self._unit() as session:
            record = await self._load_contact(session, contact_id)
            return _to_contact(record) if record else None

    async def find_contact_by_phone(self, phone: str) -> Optional[Contact]:
        async with self._unit() as session:
            record = await session.scalar(select(ContactRecord).where(ContactRecord.phone == phone))
            return _to_contact(record) if record else None

    async def find_contact_by_email(self, email: str) -> Optional[Contact]:
        async with self._unit() as session:
            record = await session.scalar(
                select(ContactRecord).where(func.lower(ContactRecord.email) == email.lower())
            )
            return _to_contact(record) if record else None

    async def list_contacts(
        self,
        filters: Optional[ContactFilters] = None,
        offset: int = 0,
        limit: Optional[int] = None
    ) -> Tuple[List[Contact], int]:
        conditions = []
        if filters is not None:
            if filters.status is not None:
                conditions.append(ContactRecord.status == ContactStatus(filters.status).value)
            if filters.unassigned_only:
                conditions.append(ContactRecord.assigned_advisor_id.is_(None))
            elif filters.assigned_advisor_id is not None:
                conditions.append(ContactRecord.assigned_advisor_id == filters.assigned_advisor_id)
            if filters.is_suspicious is not None:
                conditions.append(ContactRecord.is_suspicious.is_(filters.is_suspicious))
            if filters.min_quality_score is not None:
                conditions.append(ContactRecord.quality_score >= filters.min_quality_score)

        async with self._unit() as session:
            total = await session.scalar(
                select(func.count()).select_from(ContactRecord).where(*conditions)
            )
            query = (
                select(ContactRecord)
                .where(*conditions)
                .order_by(ContactRecord.created_at.desc(), ContactRecord.id.desc())
                .offset(offset)
            )
            if limit is not None:
                query = query.limit(limit)
            result = await session.execute(query)
            return [_to_contact(r) for r in result.scalars().all()], total or 0

    async def list_contacts_by_ids(self, contact_ids: List[int]) -> List[Contact]:
        if not contact_ids:
            return []
        async with self._unit() as session:
            result = await session.execute(
                select(ContactRecord)
                .where(ContactRecord.id.in_(contact_ids))
                .execution_options(populate_existing=True)
            )
            by_id = {r.id: _to_contact(r) for r in result.scalars().all()}
        return [by_id[cid] for cid in contact_ids if cid in by_id]

    async def update_contact(self, contact_id: int, values: Dict[str, Any]) -> Contact:
        async with self._unit() as session:
            record = await self._load_contact(session, contact_id)
            if record is None:
                raise RecordNotFoundError("Contact", contact_id)
            for key, value in values.items():
                setattr(record, key, value)
            record.updated_at = utcnow()
            try:
                await session.flush()
            except IntegrityError as e:
                logger.warning(f"Contact {contact_id} update rejected by unique constraint: {e.orig}")
                raise DuplicateContactError("phone", values.get("phone"))
            return _to_contact(record)

    async def record_interaction(
        self,
        contact_id: int,
        at: datetime,
        status: Optional[ContactStatus] = None,
        notes: Optional[str] = None
    ) -> Contact:
        values: Dict[str, Any] = {
            "contact_count": ContactRecord.contact_count + 1,
            "last_contact_date": at,
            "updated_at": utcnow(),
        }
        if status is not None:
            values["status"] = ContactStatus(status).value
        if notes is not None:
            values["notes"] = notes

        async with self._unit() as session:
            result = await session.execute(
                update(ContactRecord)
                .where(ContactRecord.id == contact_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise RecordNotFoundError("Contact", contact_id)
            record = await self._load_contact(session, contact_id)
            return _to_contact(record)

    # ------------------------------------------------------------------
    # Advisors
    # ------------------------------------------------------------------

    async def _load_advisor(self, session: AsyncSession, advisor_id: int) -> Optional[AdvisorRecord]:
        result = await session.execute(
            select(AdvisorRecord)
            .where(AdvisorRecord.id == advisor_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def create_advisor(self, values: Dict[str, Any]) -> Advisor:
        async with self._unit() as session:
            record = AdvisorRecord(**values)
            session.add(record)
            try:
                await session.flush()
            except IntegrityError as e:
                logger.warning(f"Advisor insert rejected by unique constraint: {e.orig}")
                raise DuplicateRecordError("advisor", "email", values.get("email"))
            await session.refresh(record)
            return _to_advisor(record)

    async def get_advisor(self, advisor_id: int) -> Optional[Advisor]:
        async with self._unit() as session:
            record = await self._load_advisor(session, advisor_id)
            return _to_advisor(record) if record else None

    async def find_advisor_by_email(self, email: str) -> Optional[Advisor]:
        async with self._unit() as session:
            record = await session.scalar(
                select(AdvisorRecord).where(func.lower(AdvisorRecord.email) == email.lower())
            )
            return _to_advisor(record) if record else None

    async def list_advisors(self, include_inactive: bool = True) -> List[Advisor]:
        query = select(AdvisorRecord).order_by(AdvisorRecord.id)
        if not include_inactive:
            query = query.where(AdvisorRecord.is_active.is_(True))
        async with self._unit() as session:
            result = await session.execute(query.execution_options(populate_existing=True))
            return [_to_advisor(r) for r in result.scalars().all()]

    async def update_advisor(self, advisor_id: int, values: Dict[str, Any]) -> Advisor:
        async with self._unit() as session:
            record = await self._load_advisor(session, advisor_id)
            if record is None:
                raise RecordNotFoundError("Advisor", advisor_id)
            for key, value in values.items():
                setattr(record, key, value)
            await session.flush()
            return _to_advisor(record)
