"""
ContactService - Contact Scoring and Distribution Orchestrator

Entry points used by the HTTP layer:
- score_contact: quality analysis of raw contact data, nothing stored
- distribute_contacts: plan + commit assignment of every unassigned contact

Plus contact intake/update with re-scoring, interaction logging, stored-contact
and bulk analysis, data health reporting and advisor administration.

Scoring never blocks a write: if the scorer fails, the contact is stored
with the default derived fields and the failure is logged.
"""
import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from salescrm.domain.errors import (
    CapacityExceededError,
    ContactValidationError,
    DuplicateContactError,
    DuplicateRecordError,
    RecordNotFoundError,
)
from salescrm.domain.interfaces.contact_repository import ContactRepository
from salescrm.domain.models.advisor import (
    Advisor,
    AdvisorCreate,
    AdvisorPerformance,
    AdvisorUpdate,
    AdvisorWorkload,
)
from salescrm.domain.models.contact import (
    Contact,
    ContactCreate,
    ContactFilters,
    ContactStatus,
    ContactUpdate,
    Interaction,
    InteractionType,
)
from salescrm.domain.models.distribution import (
    Assignment,
    DistributionOptions,
    DistributionResult,
)
from salescrm.domain.models.health import (
    BulkAnalysisEntry,
    DatabaseHealth,
    DuplicateEmailGroup,
    ImprovementSuggestion,
    quality_bucket,
)
from salescrm.domain.models.quality import QualityAnalysis
from salescrm.domain.services.contact_scorer import ContactScorer
from salescrm.domain.services.contact_validator import normalize_phone
from salescrm.domain.services.distribution_executor import DistributionExecutor
from salescrm.domain.services.distribution_planner import DistributionPlanner

logger = logging.getLogger(__name__)

# Fields whose change invalidates the stored quality score
_SCORED_INPUTS = ("name", "phone", "email")


class ContactService:
    """
    Coordinates the scorer, planner and executor over one repository.

    Distribution runs are serialized per service instance.

    Example Usage:
        service = ContactService(repository, scorer)
        contact = await service.create_contact(ContactCreate(name="Ana Ruiz", phone="5512345678"))
        result = await service.distribute_contacts()
        print(result.message)
    """

    def __init__(
        self,
        repository: ContactRepository,
        scorer: ContactScorer,
        planner: Optional[DistributionPlanner] = None,
        executor: Optional[DistributionExecutor] = None,
        phone_region: str = "MX",
        default_max_contacts: int = 50
    ):
        self.repository = repository
        self.scorer = scorer
        self.planner = planner or DistributionPlanner()
        self.executor = executor or DistributionExecutor(repository)
        self.phone_region = phone_region
        self.default_max_contacts = default_max_contacts
        self._distribution_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    async def score_contact(self, contact_data: Any) -> QualityAnalysis:
        """Analyze contact data without storing anything"""
        return await self.scorer.score(contact_data)

    async def _safe_score(self, contact_data: Any) -> Optional[QualityAnalysis]:
        try:
            return await self.scorer.score(contact_data)
        except Exception as e:
            logger.error(f"Contact scoring failed, storing without a score: {e}", exc_info=True)
            return None

    @staticmethod
    def _derived_fields(analysis: QualityAnalysis) -> Dict[str, Any]:
        values: Dict[str, Any] = {
            "quality_score": analysis.score,
            "is_suspicious": analysis.is_suspicious,
        }
        if analysis.ai_details is not None:
            values["ai_analysis_details"] = analysis.ai_details
        return values

    # ------------------------------------------------------------------
    # Distribution
    # ------------------------------------------------------------------

    async def distribute_contacts(self, options: Optional[DistributionOptions] = None) -> DistributionResult:
        """
        Assign every unassigned contact to an active advisor with capacity.

        Raises:
            PlanningError: Inconsistent input from storage
            DistributionExecutionError: Commit failed; nothing was applied
        """
        async with self._distribution_lock:
            contacts = await self.repository.find_unassigned_contacts()
            advisors = await self.repository.find_active_advisors()
            logger.info(f"Distributing {len(contacts)} contacts across {len(advisors)} active advisors")

            plan = self.planner.plan(contacts, advisors, options)

            if plan.is_empty:
                if len(plan.log) == 1:
                    message = plan.log[0]
                else:
                    message = f"No contacts were assigned. {len(plan.unassigned_contacts)} remain unassigned."
                return DistributionResult(
                    assignments=[],
                    unassigned_contacts=plan.unassigned_contacts,
                    message=message,
                    log=plan.log
                )

            result = await self.executor.apply(plan)

        message = f"Distribution completed. {len(result.applied)} contacts assigned."
        if result.unassigned_contacts:
            message += f" {len(result.unassigned_contacts)} not assigned."
        logger.info(message)

        return DistributionResult(
            assignments=result.applied,
            unassigned_contacts=result.unassigned_contacts,
            message=message,
            log=result.log
        )

    async def assign_contacts_to_advisor(self, advisor_id: int, contact_ids: List[int]) -> List[Assignment]:
        """
        Manually assign contacts to one advisor, all or nothing.

        Contacts already with another advisor are moved and that advisor's
        load is released.

        Raises:
            RecordNotFoundError: Unknown advisor or contact id
            CapacityExceededError: Advisor inactive or without enough room
        """
        advisor = await self.repository.get_advisor(advisor_id)
        if advisor is None:
            raise RecordNotFoundError("Advisor", advisor_id)
        if not advisor.is_active:
            raise CapacityExceededError(advisor_id, f"Advisor {advisor_id} is not active")

        unique_ids = list(dict.fromkeys(contact_ids))
        contacts = await self.repository.list_contacts_by_ids(unique_ids)
        found = {c.id for c in contacts}
        missing = [cid for cid in unique_ids if cid not in found]
        if missing:
            raise RecordNotFoundError("Contact", missing[0])

        to_move = [c for c in contacts if c.assigned_advisor_id != advisor_id]
        if len(to_move) > advisor.available_capacity:
            raise CapacityExceededError(
                advisor_id,
                f"Advisor {advisor_id} has room for {advisor.available_capacity} more contacts, "
                f"{len(to_move)} requested"
            )

        async def _assign(repo: ContactRepository) -> List[Assignment]:
            applied: List[Assignment] = []
            for contact in to_move:
                if contact.assigned_advisor_id is not None:
                    await repo.increment_advisor_load(contact.assigned_advisor_id, -1)
                await repo.set_contact_advisor(contact.id, advisor_id)
                await repo.increment_advisor_load(advisor_id, 1)
                applied.append(Assignment(
                    contact_id=contact.id,
                    advisor_id=advisor_id,
                    contact_name=contact.name,
                    advisor_name=advisor.name,
                ))
            return applied

        applied = await self.repository.run_in_transaction(_assign)
        logger.info(f"Manually assigned {len(applied)} contacts to advisor {advisor_id}")
        return applied

    # ------------------------------------------------------------------
    # Contacts
    # ------------------------------------------------------------------

    def _normalize_phone(self, phone: str) -> str:
        phone = phone.strip()
        return normalize_phone(phone, self.phone_region) or phone

    async def create_contact(self, data: ContactCreate) -> Contact:
        """
        Register a contact and store its quality score.

        Raises:
            ContactValidationError: Name or phone missing
            DuplicateContactError: Phone or email already registered
        """
        name = (data.name or "").strip()
        raw_phone = (data.phone or "").strip()
        if not name or not raw_phone:
            raise ContactValidationError("Name and phone are required")

        phone = self._normalize_phone(raw_phone)
        email = (data.email or "").strip() or None

        if await self.repository.find_contact_by_phone(phone):
            raise DuplicateContactError("phone", phone)
        if email and await self.repository.find_contact_by_email(email):
            raise DuplicateContactError("email", email)

        values: Dict[str, Any] = {
            "name": name,
            "phone": phone,
            "email": email,
            "status": ContactStatus(data.status).value,
            "notes": data.notes,
            "source": data.source,
        }

        analysis = await self._safe_score(values)
        if analysis is not None:
            values.update(self._derived_fields(analysis))

        contact = await self.repository.create_contact(values)
        logger.info(f"Contact created: {contact.id} (QS:{contact.quality_score}, suspicious={contact.is_suspicious})")
        return contact

    async def get_contact(self, contact_id: int) -> Contact:
        contact = await self.repository.get_contact(contact_id)
        if contact is None:
            raise RecordNotFoundError("Contact", contact_id)
        return contact

    async def list_contacts(
        self,
        filters: Optional[ContactFilters] = None,
        page: int = 1,
        page_size: int = 20
    ) -> Tuple[List[Contact], int]:
        offset = (max(page, 1) - 1) * page_size
        return await self.repository.list_contacts(filters, offset=offset, limit=page_size)

    async def update_contact(self, contact_id: int, data: ContactUpdate) -> Contact:
        """
        Apply a partial update; re-score when name, phone or email change.

        The previous ai_analysis_details are kept if the new analysis has none.
        """
        contact = await self.get_contact(contact_id)
        changes = data.model_dump(exclude_unset=True)

        for required in ("name", "phone"):
            if required in changes:
                value = (changes[required] or "").strip()
                if not value:
                    raise ContactValidationError(f"Contact {required} cannot be empty")
                changes[required] = value

        if "phone" in changes:
            changes["phone"] = self._normalize_phone(changes["phone"])
            if changes["phone"] != contact.phone:
                existing = await self.repository.find_contact_by_phone(changes["phone"])
                if existing and existing.id != contact_id:
                    raise DuplicateContactError("phone", changes["phone"])

        if "email" in changes:
            changes["email"] = (changes["email"] or "").strip() or None
            if changes["email"] and changes["email"] != contact.email:
                existing = await self.repository.find_contact_by_email(changes["email"])
                if existing and existing.id != contact_id:
                    raise DuplicateContactError("email", changes["email"])

        if changes.get("status") is not None:
            changes["status"] = ContactStatus(changes["status"]).value
        elif "status" in changes:
            del changes["status"]

        if any(field in changes and changes[field] != getattr(contact, field) for field in _SCORED_INPUTS):
            merged = contact.model_copy(update=changes)
            analysis = await self._safe_score(merged)
            if analysis is not None:
                changes.update(self._derived_fields(analysis))

        if not changes:
            return contact

        updated = await self.repository.update_contact(contact_id, changes)
        logger.info(f"Contact {contact_id} updated: fields={sorted(changes)}")
        return updated

    async def record_interaction(self, contact_id: int, interaction: Interaction) -> Contact:
        """Log a call/sms/email/meeting; bumps contact_count and last_contact_date"""
        contact = await self.get_contact(contact_id)
        now = datetime.now(timezone.utc)

        notes = None
        if interaction.notes or interaction.outcome:
            entry = f"[{now:%Y-%m-%d %H:%M} {InteractionType(interaction.type).value}]"
            if interaction.notes:
                entry += f" {interaction.notes}"
            if interaction.outcome:
                entry += f" (outcome: {interaction.outcome})"
            notes = f"{contact.notes}\n{entry}" if contact.notes else entry

        status = ContactStatus(interaction.status).value if interaction.status else None
        updated = await self.repository.record_interaction(contact_id, at=now, status=status, notes=notes)
        logger.info(f"Interaction recorded for contact {contact_id}: count={updated.contact_count}")
        return updated

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    async def analyze_stored_contact(self, contact_id: int) -> QualityAnalysis:
        """Re-score a stored contact and persist the derived fields"""
        contact = await self.get_contact(contact_id)
        analysis = await self.scorer.score(contact)
        await self.repository.update_contact(contact_id, self._derived_fields(analysis))
        return analysis

    async def bulk_analyze(self, contact_ids: List[int]) -> List[BulkAnalysisEntry]:
        """One entry per requested id; a failing contact does not stop the batch"""
        contacts = {c.id: c for c in await self.repository.list_contacts_by_ids(contact_ids)}
        results: List[BulkAnalysisEntry] = []

        for contact_id in dict.fromkeys(contact_ids):
            contact = contacts.get(contact_id)
            if contact is None:
                results.append(BulkAnalysisEntry(contact_id=contact_id, error=f"Contact {contact_id} not found"))
                continue
            try:
                analysis = await self.scorer.score(contact)
                await self.repository.update_contact(contact_id, self._derived_fields(analysis))
                results.append(BulkAnalysisEntry(contact_id=contact_id, name=contact.name, analysis=analysis))
            except Exception as e:
                logger.error(f"Bulk analysis failed for contact {contact_id}: {e}")
                results.append(BulkAnalysisEntry(contact_id=contact_id, name=contact.name, error=str(e)))

        logger.info(f"Bulk analysis processed {len(results)} contacts")
        return results

    async def get_database_health(self) -> DatabaseHealth:
        contacts, total = await self.repository.list_contacts()

        distribution = {"excellent": 0, "good": 0, "fair": 0, "poor": 0}
        by_email: Dict[str, List[int]] = defaultdict(list)
        suspicious = invalid_phones = unassigned = 0
        score_sum = 0

        for contact in contacts:
            distribution[quality_bucket(contact.quality_score)] += 1
            score_sum += contact.quality_score
            if contact.is_suspicious:
                suspicious += 1
            if normalize_phone(contact.phone, self.phone_region) is None:
                invalid_phones += 1
            if contact.assigned_advisor_id is None:
                unassigned += 1
            if contact.email:
                by_email[contact.email.lower()].append(contact.id)

        duplicates = [
            DuplicateEmailGroup(email=email, contact_ids=sorted(ids))
            for email, ids in sorted(by_email.items())
            if len(ids) > 1
        ]

        return DatabaseHealth(
            total_contacts=total,
            suspicious_contacts=suspicious,
            invalid_phone_contacts=invalid_phones,
            unassigned_contacts=unassigned,
            duplicate_email_groups=duplicates,
            quality_distribution=distribution,
            average_quality_score=round(score_sum / len(contacts), 2) if contacts else 0.0,
        )

    async def suggest_improvements(self) -> Tuple[List[ImprovementSuggestion], DatabaseHealth]:
        health = await self.get_database_health()
        suggestions: List[ImprovementSuggestion] = []

        if health.suspicious_contacts:
            suggestions.append(ImprovementSuggestion(
                type="cleanup",
                priority="high",
                action="Review suspicious contacts",
                description=f"{health.suspicious_contacts} contacts appear to be fake or suspicious",
                endpoint="/api/v1/contacts",
                params={"is_suspicious": True},
            ))
        if health.invalid_phone_contacts:
            suggestions.append(ImprovementSuggestion(
                type="validation",
                priority="high",
                action="Fix invalid phone numbers",
                description=f"{health.invalid_phone_contacts} contacts have invalid phone numbers",
            ))
        if health.duplicate_email_groups:
            suggestions.append(ImprovementSuggestion(
                type="deduplication",
                priority="medium",
                action="Merge duplicate contacts",
                description=f"{len(health.duplicate_email_groups)} email addresses are shared by several contacts",
            ))
        if health.quality_distribution.get("poor"):
            suggestions.append(ImprovementSuggestion(
                type="enhancement",
                priority="medium",
                action="Improve data quality",
                description=f"{health.quality_distribution['poor']} contacts have poor data quality",
                endpoint="/api/v1/ai/bulk-analyze",
            ))
        if health.unassigned_contacts:
            suggestions.append(ImprovementSuggestion(
                type="distribution",
                priority="low",
                action="Distribute unassigned contacts",
                description=f"{health.unassigned_contacts} contacts are not assigned to advisors",
                endpoint="/api/v1/ai/distribute-contacts",
            ))

        return suggestions, health

    # ------------------------------------------------------------------
    # Advisors
    # ------------------------------------------------------------------

    async def create_advisor(self, data: AdvisorCreate) -> Advisor:
        email = data.email.strip()
        if await self.repository.find_advisor_by_email(email):
            raise DuplicateRecordError("advisor", "email", email)

        values = data.model_dump()
        values["email"] = email
        if "max_contacts" not in data.model_fields_set:
            values["max_contacts"] = self.default_max_contacts

        advisor = await self.repository.create_advisor(values)
        logger.info(f"Advisor created: {advisor.id} ({advisor.name}, max={advisor.max_contacts})")
        return advisor

    async def get_advisor(self, advisor_id: int) -> Advisor:
        advisor = await self.repository.get_advisor(advisor_id)
        if advisor is None:
            raise RecordNotFoundError("Advisor", advisor_id)
        return advisor

    async def list_advisors(self, include_inactive: bool = True) -> List[Advisor]:
        return await self.repository.list_advisors(include_inactive=include_inactive)

    async def update_advisor(self, advisor_id: int, data: AdvisorUpdate) -> Advisor:
        """
        Apply a partial advisor edit.

        max_contacts may not drop below the advisor's current load. The
        check runs under the distribution lock so a concurrent run cannot
        slip contacts in between.

        Raises:
            RecordNotFoundError: Unknown advisor
            DuplicateRecordError: Email belongs to another advisor
            CapacityExceededError: max_contacts below current_contact_count
        """
        await self.get_advisor(advisor_id)
        changes = {field: value for field, value in data.model_dump(exclude_unset=True).items() if value is not None}
        if "name" in changes:
            changes["name"] = changes["name"].strip()
            if not changes["name"]:
                raise ContactValidationError("Advisor name cannot be empty")

        if "email" in changes:
            changes["email"] = changes["email"].strip()
            existing = await self.repository.find_advisor_by_email(changes["email"])
            if existing and existing.id != advisor_id:
                raise DuplicateRecordError("advisor", "email", changes["email"])

        async with self._distribution_lock:
            advisor = await self.get_advisor(advisor_id)
            new_max = changes.get("max_contacts", advisor.max_contacts)
            if new_max < advisor.current_contact_count:
                raise CapacityExceededError(
                    advisor_id,
                    f"max_contacts {new_max} is below advisor {advisor_id}'s "
                    f"current load of {advisor.current_contact_count}"
                )
            if not changes:
                return advisor
            updated = await self.repository.update_advisor(advisor_id, changes)

        logger.info(f"Advisor {advisor_id} updated: {', '.join(sorted(changes))}")
        return updated

    async def deactivate_advisor(self, advisor_id: int) -> Advisor:
        """Soft delete: the advisor keeps its contacts but gets no new ones"""
        await self.get_advisor(advisor_id)
        advisor = await self.repository.update_advisor(advisor_id, {"is_active": False})
        logger.info(f"Advisor {advisor_id} deactivated")
        return advisor

    async def get_advisor_workload(self, advisor_id: int) -> AdvisorWorkload:
        advisor = await self.get_advisor(advisor_id)
        contacts, total = await self.repository.list_contacts(ContactFilters(assigned_advisor_id=advisor_id))

        status_distribution: Dict[str, int] = defaultdict(int)
        quality_distribution: Dict[str, int] = defaultdict(int)
        for contact in contacts:
            status_distribution[str(ContactStatus(contact.status).value)] += 1
            quality_distribution[quality_bucket(contact.quality_score)] += 1

        return AdvisorWorkload(
            advisor_id=advisor.id,
            name=advisor.name,
            is_active=advisor.is_active,
            total_contacts=total,
            max_contacts=advisor.max_contacts,
            available_capacity=advisor.available_capacity,
            status_distribution=dict(status_distribution),
            quality_distribution=dict(quality_distribution),
        )

    async def get_advisor_performance(self, advisor_id: int) -> AdvisorPerformance:
        """Conversion, contact rate and average quality over the assigned contacts"""
        advisor = await self.get_advisor(advisor_id)
        contacts, total = await self.repository.list_contacts(ContactFilters(assigned_advisor_id=advisor_id))

        statuses = [ContactStatus(contact.status) for contact in contacts]
        converted = statuses.count(ContactStatus.CONVERTED)
        contacted = statuses.count(ContactStatus.CONTACTED)

        def percent(part: int, whole: int) -> float:
            return round(part / whole * 100, 2) if whole else 0.0

        average_quality = sum(contact.quality_score for contact in contacts) / total if total else 0.0

        return AdvisorPerformance(
            advisor_id=advisor.id,
            name=advisor.name,
            is_active=advisor.is_active,
            department=advisor.department,
            performance_score=advisor.performance_score,
            current_contact_count=advisor.current_contact_count,
            max_contacts=advisor.max_contacts,
            capacity_utilization=percent(advisor.current_contact_count, advisor.max_contacts),
            converted_contacts=converted,
            conversion_rate=percent(converted, total),
            contacted_contacts=contacted,
            contact_rate=percent(contacted, total),
            average_quality_score=round(average_quality, 2),
        )
