"""
Advisors Endpoints
Advisor registration, edits, soft deactivation, workload, performance and manual assignment
"""
import logging
from typing import List

from fastapi import APIRouter, HTTPException, Depends, Query
from pydantic import BaseModel, Field

from salescrm.api.v1.dependencies import get_contact_service, to_http_error
from salescrm.domain.errors import SalesCRMError
from salescrm.domain.models.advisor import (
    Advisor,
    AdvisorCreate,
    AdvisorPerformance,
    AdvisorUpdate,
    AdvisorWorkload,
)
from salescrm.domain.models.distribution import Assignment
from salescrm.services.contact_service import ContactService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/advisors", tags=["advisors"])


class AssignContactsRequest(BaseModel):
    contact_ids: List[int] = Field(..., min_length=1)


class AssignContactsResponse(BaseModel):
    advisor_id: int
    assigned: int
    assignments: List[Assignment]


@router.post("", response_model=Advisor, status_code=201)
async def create_advisor(data: AdvisorCreate, service: ContactService = Depends(get_contact_service)):
    try:
        return await service.create_advisor(data)
    except SalesCRMError as e:
        raise to_http_error(e)


@router.get("", response_model=List[Advisor])
async def list_advisors(
    include_inactive: bool = Query(True),
    service: ContactService = Depends(get_contact_service)
):
    return await service.list_advisors(include_inactive=include_inactive)


@router.get("/{advisor_id}", response_model=Advisor)
async def get_advisor(advisor_id: int, service: ContactService = Depends(get_contact_service)):
    try:
        return await service.get_advisor(advisor_id)
    except SalesCRMError as e:
        raise to_http_error(e)


@router.put("/{advisor_id}", response_model=Advisor)
async def update_advisor(
    advisor_id: int,
    data: AdvisorUpdate,
    service: ContactService = Depends(get_contact_service)
):
    """Partial edit; also reactivates with is_active=true"""
    try:
        return await service.update_advisor(advisor_id, data)
    except SalesCRMError as e:
        raise to_http_error(e)


@router.delete("/{advisor_id}", response_model=Advisor)
async def deactivate_advisor(advisor_id: int, service: ContactService = Depends(get_contact_service)):
    """Advisors are deactivated, never deleted"""
    try:
        return await service.deactivate_advisor(advisor_id)
    except SalesCRMError as e:
        raise to_http_error(e)


@router.get("/{advisor_id}/workload", response_model=AdvisorWorkload)
async def get_advisor_workload(advisor_id: int, service: ContactService = Depends(get_contact_service)):
    try:
        return await service.get_advisor_workload(advisor_id)
    except SalesCRMError as e:
        raise to_http_error(e)


@router.get("/{advisor_id}/performance", response_model=AdvisorPerformance)
async def get_advisor_performance(advisor_id: int, service: ContactService = Depends(get_contact_service)):
    try:
        return await service.get_advisor_performance(advisor_id)
    except SalesCRMError as e:
        raise to_http_error(e)


@router.post("/{advisor_id}/assign-contacts", response_model=AssignContactsResponse)
async def assign_contacts(
    advisor_id: int,
    request: AssignContactsRequest,
    service: ContactService = Depends(get_contact_service)
):
    """
    Assign specific contacts to this advisor in one transaction.

    400 if the advisor is inactive or lacks room, 404 for unknown ids.
    """
    try:
        assignments = await service.assign_contacts_to_advisor(advisor_id, request.contact_ids)
    except SalesCRMError as e:
        raise to_http_error(e)
    except Exception as e:
        logger.error(f"Error assigning contacts to advisor {advisor_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))

    return AssignContactsResponse(advisor_id=advisor_id, assigned=len(assignments), assignments=assignments)
