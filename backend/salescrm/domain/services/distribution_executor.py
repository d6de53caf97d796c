"""
Distribution Executor
Commits an AssignmentPlan in a single all-or-nothing transaction.
"""
import logging
from typing import List

from salescrm.domain.errors import DistributionExecutionError
from salescrm.domain.interfaces.contact_repository import ContactRepository
from salescrm.domain.models.distribution import Assignment, AssignmentPlan, ExecutionResult

logger = logging.getLogger(__name__)


class DistributionExecutor:
    """
    Applies planned assignments against storage.

    For each pair, in plan order: set the contact's advisor, then atomically
    increment the advisor's load by one. The repository's increment refuses
    to exceed max_contacts, so concurrent batches touching the same advisor
    cannot overfill it or lose an update.
    """

    def __init__(self, repository: ContactRepository):
        self.repository = repository

    async def apply(self, plan: AssignmentPlan) -> ExecutionResult:
        if plan.is_empty:
            return ExecutionResult(
                applied=[],
                unassigned_contacts=plan.unassigned_contacts,
                log=list(plan.log)
            )

        async def _apply_all(repo: ContactRepository) -> List[Assignment]:
            applied: List[Assignment] = []
            for assignment in plan.assignments:
                await repo.set_contact_advisor(assignment.contact_id, assignment.advisor_id)
                await repo.increment_advisor_load(assignment.advisor_id, 1)
                applied.append(assignment)
                logger.debug(f"Contact {assignment.contact_id} assigned to advisor {assignment.advisor_id}")
            return applied

        try:
            applied = await self.repository.run_in_transaction(_apply_all)
        except Exception as e:
            logger.error(f"Error distributing contacts, transaction rolled back: {e}", exc_info=True)
            raise DistributionExecutionError(
                f"Distribution failed and was rolled back: {e}",
                plan=plan,
                cause=e
            ) from e

        log = list(plan.log)
        log.append(f"Execution committed: {len(applied)} assignments applied.")
        logger.info(f"Distribution committed: {len(applied)} assignments")

        return ExecutionResult(applied=applied, unassigned_contacts=plan.unassigned_contacts, log=log)
