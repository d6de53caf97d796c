"""
Unit tests for ContactService
Intake, updates, interactions, distribution, analysis and advisor admin
"""
import pytest
from unittest.mock import AsyncMock
from pydantic import ValidationError

from salescrm.domain.errors import (
    CapacityExceededError,
    ContactValidationError,
    DistributionExecutionError,
    DuplicateContactError,
    DuplicateRecordError,
    RecordNotFoundError,
)
from salescrm.domain.models.advisor import AdvisorCreate, AdvisorUpdate
from salescrm.domain.models.contact import (
    ContactCreate,
    ContactFilters,
    ContactStatus,
    ContactUpdate,
    Interaction,
    InteractionType,
)
from salescrm.domain.models.distribution import DistributionOptions
from salescrm.services.contact_service import ContactService


class TestCreateContact:

    @pytest.mark.asyncio
    async def test_create_normalizes_and_scores(self, contact_service):
        contact = await contact_service.create_contact(ContactCreate(name=" Ana Ruiz ", phone="(650) 253-0001"))

        assert contact.id == 1
        assert contact.name == "Ana Ruiz"
        assert contact.phone == "+16502530001"
        assert contact.status == ContactStatus.NEW.value
        # phone 30 + name 20 + completeness 20, no email
        assert contact.quality_score == 70
        assert contact.is_suspicious is False

    @pytest.mark.asyncio
    async def test_suspicious_name_is_flagged(self, contact_service):
        contact = await contact_service.create_contact(ContactCreate(name="test123", phone="+16502530002"))

        assert contact.is_suspicious is True

    @pytest.mark.asyncio
    async def test_duplicate_phone(self, contact_service):
        await contact_service.create_contact(ContactCreate(name="Ana Ruiz", phone="+16502530001"))

        with pytest.raises(DuplicateContactError) as exc_info:
            await contact_service.create_contact(ContactCreate(name="Ana Maria", phone="650 253 0001"))

        assert exc_info.value.field == "phone"

    @pytest.mark.asyncio
    async def test_duplicate_email_is_case_insensitive(self, contact_service):
        await contact_service.create_contact(
            ContactCreate(name="Ana Ruiz", phone="+16502530001", email="ana@example.com")
        )

        with pytest.raises(DuplicateContactError) as exc_info:
            await contact_service.create_contact(
                ContactCreate(name="Ana Maria", phone="+16502530002", email="ANA@example.com")
            )

        assert exc_info.value.field == "email"

    @pytest.mark.asyncio
    async def test_blank_name_is_rejected(self, contact_service):
        with pytest.raises(ContactValidationError):
            await contact_service.create_contact(ContactCreate(name="   ", phone="+16502530001"))

    @pytest.mark.asyncio
    async def test_scorer_failure_still_stores(self, memory_repository, scorer):
        scorer.score = AsyncMock(side_effect=RuntimeError("boom"))
        service = ContactService(memory_repository, scorer, phone_region="US")

        contact = await service.create_contact(ContactCreate(name="Ana Ruiz", phone="+16502530001"))

        assert contact.quality_score == 0
        assert contact.is_suspicious is False


class TestUpdateContact:

    @pytest.mark.asyncio
    async def test_email_change_rescores(self, contact_service):
        contact = await contact_service.create_contact(ContactCreate(name="Ana Ruiz", phone="+16502530001"))

        updated = await contact_service.update_contact(contact.id, ContactUpdate(email="ana@example.com"))

        assert updated.email == "ana@example.com"
        assert updated.quality_score == contact.quality_score + 20

    @pytest.mark.asyncio
    async def test_status_only_change_keeps_score(self, contact_service):
        contact = await contact_service.create_contact(ContactCreate(name="Ana Ruiz", phone="+16502530001"))
        contact_service.scorer.score = AsyncMock()

        updated = await contact_service.update_contact(contact.id, ContactUpdate(status=ContactStatus.FOLLOW_UP))

        assert updated.status == "FollowUp"
        assert updated.quality_score == contact.quality_score
        contact_service.scorer.score.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_phone_taken_by_another_contact(self, contact_service):
        await contact_service.create_contact(ContactCreate(name="Ana Ruiz", phone="+16502530001"))
        other = await contact_service.create_contact(ContactCreate(name="Luis Gomez", phone="+16502530002"))

        with pytest.raises(DuplicateContactError):
            await contact_service.update_contact(other.id, ContactUpdate(phone="+16502530001"))

    @pytest.mark.asyncio
    async def test_unknown_contact(self, contact_service):
        with pytest.raises(RecordNotFoundError):
            await contact_service.update_contact(99, ContactUpdate(notes="hello"))


class TestInteractions:

    @pytest.mark.asyncio
    async def test_interaction_updates_tracking(self, contact_service):
        contact = await contact_service.create_contact(ContactCreate(name="Ana Ruiz", phone="+16502530001"))

        updated = await contact_service.record_interaction(contact.id, Interaction(
            type=InteractionType.CALL,
            status=ContactStatus.CONTACTED,
            notes="Left a message",
            outcome="no answer",
        ))

        assert updated.contact_count == 1
        assert updated.last_contact_date is not None
        assert updated.status == "Contacted"
        assert "call] Left a message (outcome: no answer)" in updated.notes

    @pytest.mark.asyncio
    async def test_interaction_appends_notes(self, contact_service):
        contact = await contact_service.create_contact(
            ContactCreate(name="Ana Ruiz", phone="+16502530001", notes="Met at fair")
        )

        await contact_service.record_interaction(contact.id, Interaction(type=InteractionType.EMAIL, notes="Sent brochure"))
        updated = await contact_service.record_interaction(contact.id, Interaction(type=InteractionType.SMS))

        assert updated.contact_count == 2
        assert updated.notes.startswith("Met at fair\n")
        assert "Sent brochure" in updated.notes


class TestDistribution:

    @pytest.mark.asyncio
    async def test_distributes_by_quality_and_load(self, seeded_repository, scorer):
        service = ContactService(seeded_repository, scorer, phone_region="US")

        result = await service.distribute_contacts()

        assert {a.contact_id: a.advisor_id for a in result.assignments} == {1: 1, 2: 2, 3: 1}
        assert result.unassigned_contacts == []
        assert result.message == "Distribution completed. 3 contacts assigned."
        assert result.log[-1] == "Execution committed: 3 assignments applied."
        advisors = await seeded_repository.list_advisors()
        assert [a.current_contact_count for a in advisors] == [2, 1]

    @pytest.mark.asyncio
    async def test_second_run_has_nothing_to_do(self, seeded_repository, scorer):
        service = ContactService(seeded_repository, scorer, phone_region="US")
        await service.distribute_contacts()

        result = await service.distribute_contacts()

        assert result.assignments == []
        assert result.message == "No unassigned contacts to distribute."

    @pytest.mark.asyncio
    async def test_no_advisors(self, contact_service):
        await contact_service.create_contact(ContactCreate(name="Ana Ruiz", phone="+16502530001"))

        result = await contact_service.distribute_contacts()

        assert result.assignments == []
        assert len(result.unassigned_contacts) == 1
        assert result.message == "No active advisors available for assignment."

    @pytest.mark.asyncio
    async def test_partial_distribution_reports_leftovers(self, seeded_repository, scorer):
        service = ContactService(seeded_repository, scorer, phone_region="US")

        result = await service.distribute_contacts(DistributionOptions(min_quality_score=50))

        assert len(result.assignments) == 2
        assert [c.id for c in result.unassigned_contacts] == [3]
        assert result.message == "Distribution completed. 2 contacts assigned. 1 not assigned."

    @pytest.mark.asyncio
    async def test_execution_failure_is_propagated(self, seeded_repository, scorer):
        executor = AsyncMock()
        executor.apply.side_effect = DistributionExecutionError("Distribution failed and was rolled back: db down")
        service = ContactService(seeded_repository, scorer, executor=executor, phone_region="US")

        with pytest.raises(DistributionExecutionError):
            await service.distribute_contacts()


class TestManualAssignment:

    @pytest.mark.asyncio
    async def test_assign_and_move(self, seeded_repository, scorer):
        service = ContactService(seeded_repository, scorer, phone_region="US")
        await service.assign_contacts_to_advisor(1, [1])

        moved = await service.assign_contacts_to_advisor(2, [1, 2])

        assert [a.contact_id for a in moved] == [1, 2]
        carla = await seeded_repository.get_advisor(1)
        pedro = await seeded_repository.get_advisor(2)
        assert carla.current_contact_count == 0
        assert pedro.current_contact_count == 2

    @pytest.mark.asyncio
    async def test_capacity_is_checked_before_writing(self, seeded_repository, scorer):
        service = ContactService(seeded_repository, scorer, phone_region="US")

        with pytest.raises(CapacityExceededError):
            await service.assign_contacts_to_advisor(1, [1, 2, 3])

        assert (await seeded_repository.get_advisor(1)).current_contact_count == 0

    @pytest.mark.asyncio
    async def test_unknown_contact(self, seeded_repository, scorer):
        service = ContactService(seeded_repository, scorer, phone_region="US")

        with pytest.raises(RecordNotFoundError):
            await service.assign_contacts_to_advisor(1, [1, 42])

    @pytest.mark.asyncio
    async def test_inactive_advisor(self, seeded_repository, scorer):
        service = ContactService(seeded_repository, scorer, phone_region="US")
        await service.deactivate_advisor(2)

        with pytest.raises(CapacityExceededError):
            await service.assign_contacts_to_advisor(2, [1])


class TestAnalysis:

    @pytest.mark.asyncio
    async def test_score_contact_stores_nothing(self, contact_service, memory_repository):
        analysis = await contact_service.score_contact({"name": "Ana Ruiz", "phone": "+16502530001"})

        assert analysis.score == 70
        assert (await memory_repository.list_contacts())[1] == 0

    @pytest.mark.asyncio
    async def test_analyze_stored_contact_persists_score(self, seeded_repository, scorer):
        service = ContactService(seeded_repository, scorer, phone_region="US")

        analysis = await service.analyze_stored_contact(3)

        assert analysis.score == 70
        assert (await seeded_repository.get_contact(3)).quality_score == 70

    @pytest.mark.asyncio
    async def test_bulk_analyze_reports_missing_ids(self, seeded_repository, scorer):
        service = ContactService(seeded_repository, scorer, phone_region="US")

        entries = await service.bulk_analyze([1, 99, 2])

        assert [e.contact_id for e in entries] == [1, 99, 2]
        assert entries[0].analysis is not None
        assert entries[1].error == "Contact 99 not found"
        assert entries[2].name == "Luis Gomez"

    @pytest.mark.asyncio
    async def test_database_health(self, memory_repository, scorer):
        await memory_repository.create_contact({"name": "Ana Ruiz", "phone": "+16502530001", "quality_score": 90,
                                                "email": "team@example.com"})
        await memory_repository.create_contact({"name": "Luis Gomez", "phone": "12", "quality_score": 30,
                                                "email": "TEAM@example.com", "is_suspicious": True})
        service = ContactService(memory_repository, scorer, phone_region="US")

        health = await service.get_database_health()

        assert health.total_contacts == 2
        assert health.suspicious_contacts == 1
        assert health.invalid_phone_contacts == 1
        assert health.unassigned_contacts == 2
        assert health.quality_distribution == {"excellent": 1, "good": 0, "fair": 0, "poor": 1}
        assert health.average_quality_score == 60.0
        assert health.duplicate_email_groups[0].count == 2

    @pytest.mark.asyncio
    async def test_suggestions_follow_health(self, memory_repository, scorer):
        await memory_repository.create_contact({"name": "Luis Gomez", "phone": "12", "quality_score": 30,
                                                "is_suspicious": True})
        service = ContactService(memory_repository, scorer, phone_region="US")

        suggestions, health = await service.suggest_improvements()

        assert [s.type for s in suggestions] == ["cleanup", "validation", "enhancement", "distribution"]
        assert suggestions[0].params == {"is_suspicious": True}
        assert health.total_contacts == 1

    @pytest.mark.asyncio
    async def test_no_suggestions_for_empty_base(self, contact_service):
        suggestions, _ = await contact_service.suggest_improvements()
        assert suggestions == []


class TestAdvisors:

    @pytest.mark.asyncio
    async def test_default_capacity_comes_from_service(self, memory_repository, scorer):
        service = ContactService(memory_repository, scorer, phone_region="US", default_max_contacts=25)

        advisor = await service.create_advisor(AdvisorCreate(name="Carla Diaz", email="carla@example.com"))

        assert advisor.max_contacts == 25
        assert advisor.is_active is True

    @pytest.mark.asyncio
    async def test_explicit_capacity_is_kept(self, contact_service):
        advisor = await contact_service.create_advisor(
            AdvisorCreate(name="Carla Diaz", email="carla@example.com", max_contacts=5)
        )
        assert advisor.max_contacts == 5

    @pytest.mark.asyncio
    async def test_duplicate_email(self, contact_service):
        await contact_service.create_advisor(AdvisorCreate(name="Carla Diaz", email="carla@example.com"))

        with pytest.raises(DuplicateRecordError):
            await contact_service.create_advisor(AdvisorCreate(name="Carla D", email="Carla@example.com"))

    @pytest.mark.asyncio
    async def test_deactivated_advisor_is_skipped_by_distribution(self, seeded_repository, scorer):
        service = ContactService(seeded_repository, scorer, phone_region="US")
        await service.deactivate_advisor(1)

        result = await service.distribute_contacts()

        assert {a.advisor_id for a in result.assignments} == {2}
        assert len(result.unassigned_contacts) == 1
        assert [a.id for a in await service.list_advisors(include_inactive=False)] == [2]

    @pytest.mark.asyncio
    async def test_workload(self, seeded_repository, scorer):
        service = ContactService(seeded_repository, scorer, phone_region="US")
        await service.distribute_contacts()

        workload = await service.get_advisor_workload(1)

        assert workload.total_contacts == 2
        assert workload.available_capacity == 0
        assert workload.status_distribution == {"New": 2}
        assert workload.quality_distribution == {"excellent": 1, "fair": 1}

    @pytest.mark.asyncio
    async def test_unknown_advisor(self, contact_service):
        with pytest.raises(RecordNotFoundError):
            await contact_service.get_advisor(7)

    def test_invalid_email_is_rejected(self):
        with pytest.raises(ValidationError):
            AdvisorCreate(name="Carla Diaz", email="carla-at-example")


class TestUpdateAdvisor:

    @pytest.mark.asyncio
    async def test_updates_score_and_capacity(self, seeded_repository, scorer):
        service = ContactService(seeded_repository, scorer, phone_region="US")

        advisor = await service.update_advisor(2, AdvisorUpdate(performance_score=95, max_contacts=4))

        assert advisor.performance_score == 95
        assert advisor.max_contacts == 4
        assert advisor.name == "Pedro Soto"
        assert (await service.get_advisor(2)).max_contacts == 4

    @pytest.mark.asyncio
    async def test_new_score_changes_distribution_order(self, seeded_repository, scorer):
        service = ContactService(seeded_repository, scorer, phone_region="US")
        await service.update_advisor(2, AdvisorUpdate(performance_score=99))

        result = await service.distribute_contacts()

        assert result.assignments[0].advisor_id == 2

    @pytest.mark.asyncio
    async def test_reactivation(self, seeded_repository, scorer):
        service = ContactService(seeded_repository, scorer, phone_region="US")
        await service.deactivate_advisor(1)

        advisor = await service.update_advisor(1, AdvisorUpdate(is_active=True))

        assert advisor.is_active is True
        assert [a.id for a in await service.list_advisors(include_inactive=False)] == [1, 2]

    @pytest.mark.asyncio
    async def test_capacity_below_current_load_is_rejected(self, seeded_repository, scorer):
        service = ContactService(seeded_repository, scorer, phone_region="US")
        await service.distribute_contacts()

        with pytest.raises(CapacityExceededError, match="current load of 2"):
            await service.update_advisor(1, AdvisorUpdate(max_contacts=1))

        assert (await service.get_advisor(1)).max_contacts == 2

    @pytest.mark.asyncio
    async def test_capacity_equal_to_current_load_is_allowed(self, seeded_repository, scorer):
        service = ContactService(seeded_repository, scorer, phone_region="US")
        await service.distribute_contacts()

        advisor = await service.update_advisor(1, AdvisorUpdate(max_contacts=2, department="Retail"))

        assert advisor.max_contacts == 2
        assert advisor.department == "Retail"

    @pytest.mark.asyncio
    async def test_email_taken_by_another_advisor(self, seeded_repository, scorer):
        service = ContactService(seeded_repository, scorer, phone_region="US")

        with pytest.raises(DuplicateRecordError):
            await service.update_advisor(2, AdvisorUpdate(email="Carla@example.com"))

    @pytest.mark.asyncio
    async def test_keeping_own_email_is_not_a_duplicate(self, seeded_repository, scorer):
        service = ContactService(seeded_repository, scorer, phone_region="US")

        advisor = await service.update_advisor(1, AdvisorUpdate(email="carla@example.com", name="Carla M. Diaz"))

        assert advisor.name == "Carla M. Diaz"

    @pytest.mark.asyncio
    async def test_unknown_advisor(self, contact_service):
        with pytest.raises(RecordNotFoundError):
            await contact_service.update_advisor(7, AdvisorUpdate(performance_score=10))

    def test_score_out_of_range(self):
        with pytest.raises(ValidationError):
            AdvisorUpdate(performance_score=101)


class TestAdvisorPerformance:

    @pytest.mark.asyncio
    async def test_metrics_over_assigned_contacts(self, seeded_repository, scorer):
        service = ContactService(seeded_repository, scorer, phone_region="US")
        await service.distribute_contacts()
        await service.update_contact(1, ContactUpdate(status=ContactStatus.CONVERTED))

        performance = await service.get_advisor_performance(1)

        assert performance.current_contact_count == 2
        assert performance.capacity_utilization == 100.0
        assert performance.converted_contacts == 1
        assert performance.conversion_rate == 50.0
        assert performance.contact_rate == 0.0
        assert performance.average_quality_score == 65.0

    @pytest.mark.asyncio
    async def test_idle_advisor(self, seeded_repository, scorer):
        service = ContactService(seeded_repository, scorer, phone_region="US")

        performance = await service.get_advisor_performance(2)

        assert performance.current_contact_count == 0
        assert performance.capacity_utilization == 0.0
        assert performance.conversion_rate == 0.0
        assert performance.average_quality_score == 0.0
