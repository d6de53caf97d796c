"""
Distribution Planner
Proposes a one-to-one contact -> advisor mapping under capacity constraints.

Greedy heuristic:
1. Contacts are processed by quality_score desc, then created_at desc
2. Each contact goes to the least-loaded advisor with room left,
   ties broken by higher performance_score
3. Loads are tracked live during planning, seeded from current_contact_count

Pure computation. Nothing is written; see DistributionExecutor.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from salescrm.domain.errors import PlanningError
from salescrm.domain.models.advisor import Advisor
from salescrm.domain.models.contact import Contact
from salescrm.domain.models.distribution import Assignment, AssignmentPlan, DistributionOptions

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)

NO_ADVISORS_MESSAGE = "No active advisors available for assignment."
NO_CAPACITY_MESSAGE = "All active advisors have reached their maximum capacity."


def _created_key(contact: Contact) -> datetime:
    created = contact.created_at
    if created is None:
        return _EPOCH
    if created.tzinfo is None:
        return created.replace(tzinfo=timezone.utc)
    return created


class DistributionPlanner:
    """Builds AssignmentPlans; holds no state between calls"""

    def __init__(self, options: Optional[DistributionOptions] = None):
        self.options = options or DistributionOptions()

    def plan(
        self,
        contacts: List[Contact],
        advisors: List[Advisor],
        options: Optional[DistributionOptions] = None
    ) -> AssignmentPlan:
        opts = options or self.options
        self._check_input(contacts, advisors)

        log: List[str] = []
        if not contacts:
            return AssignmentPlan(log=["No unassigned contacts to distribute."])

        if not advisors:
            logger.warning("No advisors available for distribution")
            return AssignmentPlan(unassigned_contacts=list(contacts), log=[NO_ADVISORS_MESSAGE])

        capacity: Dict[int, int] = {a.id: a.max_contacts for a in advisors}
        available = [
            a for a in advisors
            if a.is_active and a.current_contact_count < capacity[a.id]
        ]
        if not available:
            logger.warning("No active advisors with remaining capacity")
            return AssignmentPlan(unassigned_contacts=list(contacts), log=[NO_CAPACITY_MESSAGE])

        ordered_contacts = sorted(
            contacts,
            key=lambda c: (c.quality_score or 0, _created_key(c)),
            reverse=True
        )
        load: Dict[int, int] = {a.id: a.current_contact_count for a in available}

        assignments: List[Assignment] = []
        unassigned: List[Contact] = []

        for contact in ordered_contacts:
            if opts.min_quality_score is not None and (contact.quality_score or 0) < opts.min_quality_score:
                unassigned.append(contact)
                log.append(
                    f"Contact {contact.id} ({contact.name}, QS:{contact.quality_score}) skipped: "
                    f"below minimum quality score {opts.min_quality_score}."
                )
                continue

            if opts.max_assignments_per_run is not None and len(assignments) >= opts.max_assignments_per_run:
                unassigned.append(contact)
                log.append(
                    f"Contact {contact.id} ({contact.name}) not assigned: "
                    f"run limit of {opts.max_assignments_per_run} assignments reached."
                )
                continue

            candidates = sorted(available, key=lambda a: (load[a.id], -a.performance_score))
            chosen = next((a for a in candidates if load[a.id] < capacity[a.id]), None)

            if chosen is None:
                unassigned.append(contact)
                log.append(
                    f"Contact {contact.id} ({contact.name}) could not be assigned "
                    f"(all advisors full or unavailable)."
                )
                continue

            load[chosen.id] += 1
            assignments.append(Assignment(
                contact_id=contact.id,
                advisor_id=chosen.id,
                contact_name=contact.name,
                advisor_name=chosen.name,
            ))
            log.append(
                f"Contact {contact.id} ({contact.name}, QS:{contact.quality_score}) assigned to "
                f"advisor {chosen.id} ({chosen.name}, Perf:{chosen.performance_score}, "
                f"Load:{load[chosen.id]}/{capacity[chosen.id]})"
            )

        if unassigned:
            logger.warning(f"{len(unassigned)} contacts could not be assigned")
        logger.info(f"Distribution plan ready: assigned={len(assignments)}, unassigned={len(unassigned)}")

        return AssignmentPlan(assignments=assignments, unassigned_contacts=unassigned, log=log)

    @staticmethod
    def _check_input(contacts: List[Contact], advisors: List[Advisor]) -> None:
        contact_ids = [c.id for c in contacts]
        if len(contact_ids) != len(set(contact_ids)):
            raise PlanningError("Duplicate contact ids in distribution input")
        advisor_ids = [a.id for a in advisors]
        if len(advisor_ids) != len(set(advisor_ids)):
            raise PlanningError("Duplicate advisor ids in distribution input")
        for advisor in advisors:
            if advisor.max_contacts < 0 or advisor.current_contact_count < 0:
                raise PlanningError(f"Advisor {advisor.id} has a negative capacity or load")
        for contact in contacts:
            if contact.assigned_advisor_id is not None:
                raise PlanningError(f"Contact {contact.id} is already assigned to advisor {contact.assigned_advisor_id}")
