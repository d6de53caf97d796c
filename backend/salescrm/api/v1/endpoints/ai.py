"""
AI Endpoints
Quality scoring, distribution and data-health reports

- POST /ai/validate-contact - Score raw contact data (nothing stored)
- POST /ai/distribute-contacts - Assign unassigned contacts to advisors
- GET  /ai/contact-analysis/{contact_id} - Re-score a stored contact
- POST /ai/bulk-analyze - Re-score several stored contacts
- GET  /ai/database-stats - Data health figures
- POST /ai/suggest-improvements - Cleanup suggestions derived from health
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel, Field

from salescrm.api.v1.dependencies import get_contact_service, to_http_error
from salescrm.domain.errors import DistributionExecutionError, SalesCRMError
from salescrm.domain.models.distribution import DistributionOptions, DistributionResult
from salescrm.domain.models.health import BulkAnalysisEntry, DatabaseHealth, ImprovementSuggestion
from salescrm.domain.models.quality import QualityAnalysis
from salescrm.services.contact_service import ContactService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["ai"])


class ValidateContactRequest(BaseModel):
    """Raw contact data; nothing here is required, missing fields score as invalid"""
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    source: Optional[str] = None
    notes: Optional[str] = None


class ContactAnalysisResponse(BaseModel):
    contact_id: int
    analysis: QualityAnalysis
    is_suspicious: bool


class BulkAnalyzeRequest(BaseModel):
    contact_ids: List[int] = Field(..., min_length=1)


class BulkAnalyzeResponse(BaseModel):
    results: List[BulkAnalysisEntry]
    processed: int
    timestamp: datetime


class SuggestionsResponse(BaseModel):
    suggestions: List[ImprovementSuggestion]
    analysis: DatabaseHealth
    timestamp: datetime


@router.post("/validate-contact", response_model=QualityAnalysis)
async def validate_contact(
    data: ValidateContactRequest,
    service: ContactService = Depends(get_contact_service)
):
    """Quality analysis of contact data before it is stored"""
    return await service.score_contact(data.model_dump())


@router.post("/distribute-contacts", response_model=DistributionResult)
async def distribute_contacts(
    options: Optional[DistributionOptions] = None,
    service: ContactService = Depends(get_contact_service)
):
    """
    Distribute every unassigned contact among active advisors.

    No advisors or no capacity is a successful, empty result. A failed
    commit is rolled back entirely and reported as 500.
    """
    try:
        return await service.distribute_contacts(options)
    except DistributionExecutionError as e:
        logger.error(f"Distribution failed: {e.message}")
        raise HTTPException(status_code=500, detail=e.message)
    except SalesCRMError as e:
        raise to_http_error(e)


@router.get("/contact-analysis/{contact_id}", response_model=ContactAnalysisResponse)
async def contact_analysis(contact_id: int, service: ContactService = Depends(get_contact_service)):
    try:
        analysis = await service.analyze_stored_contact(contact_id)
    except SalesCRMError as e:
        raise to_http_error(e)
    return ContactAnalysisResponse(contact_id=contact_id, analysis=analysis, is_suspicious=analysis.is_suspicious)


@router.post("/bulk-analyze", response_model=BulkAnalyzeResponse)
async def bulk_analyze(request: BulkAnalyzeRequest, service: ContactService = Depends(get_contact_service)):
    results = await service.bulk_analyze(request.contact_ids)
    return BulkAnalyzeResponse(results=results, processed=len(results), timestamp=datetime.now(timezone.utc))


@router.get("/database-stats", response_model=DatabaseHealth)
async def database_stats(service: ContactService = Depends(get_contact_service)):
    return await service.get_database_health()


@router.post("/suggest-improvements", response_model=SuggestionsResponse)
async def suggest_improvements(service: ContactService = Depends(get_contact_service)):
    suggestions, health = await service.suggest_improvements()
    return SuggestionsResponse(suggestions=suggestions, analysis=health, timestamp=datetime.now(timezone.utc))
