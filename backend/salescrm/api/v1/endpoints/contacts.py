"""
Contacts Endpoints
Contact intake, listing, updates, interaction logging and CSV import

- POST /contacts - Create a contact (phone normalized, quality scored)
- POST /contacts/upload - Bulk import from CSV with per-row error reporting
- GET /contacts - Filtered, paginated listing (newest first)
- GET/PUT /contacts/{contact_id}
- POST /contacts/{contact_id}/interactions - Log a call/sms/email/meeting
"""
import csv
import io
import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, UploadFile, File, Query
from pydantic import BaseModel, ValidationError

from salescrm.api.v1.dependencies import get_contact_service, to_http_error
from salescrm.domain.errors import DuplicateRecordError, SalesCRMError
from salescrm.domain.models.contact import (
    Contact,
    ContactCreate,
    ContactFilters,
    ContactStatus,
    ContactUpdate,
    Interaction,
)
from salescrm.services.contact_service import ContactService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contacts", tags=["contacts"])


class ImportRowError(BaseModel):
    """Single import error"""
    row: int
    error: str
    phone: Optional[str] = None


class BulkImportResponse(BaseModel):
    """Bulk import response"""
    total_rows: int
    imported: int
    failed: int
    duplicates_skipped: int = 0
    errors: List[ImportRowError]


class ContactListResponse(BaseModel):
    contacts: List[Contact]
    total: int
    page: int
    page_size: int


# Accepted CSV headers per field (case-insensitive)
CSV_COLUMNS = {
    "name": ("name", "full_name"),
    "phone": ("phone", "phone_number"),
    "email": ("email",),
    "notes": ("notes",),
    "source": ("source",),
}


def _read_csv_row(row: dict) -> dict:
    """Pick known columns out of a CSV row, ignoring header case and padding"""
    normalized = {
        (k or "").lower().strip(): (v.strip() if isinstance(v, str) else None)
        for k, v in row.items()
    }
    values = {}
    for field, aliases in CSV_COLUMNS.items():
        for alias in aliases:
            if normalized.get(alias):
                values[field] = normalized[alias]
                break
    return values


@router.post("", response_model=Contact, status_code=201)
async def create_contact(
    data: ContactCreate,
    service: ContactService = Depends(get_contact_service)
):
    """
    Create a contact.

    The phone is normalized to E.164 and the contact is scored before it
    is stored. Duplicate phone or email returns 409.
    """
    try:
        return await service.create_contact(data)
    except SalesCRMError as e:
        raise to_http_error(e)
    except Exception as e:
        logger.error(f"Error creating contact: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/upload", response_model=BulkImportResponse)
async def upload_contacts(
    file: UploadFile = File(..., description="CSV file with contacts"),
    service: ContactService = Depends(get_contact_service)
):
    """
    Bulk import contacts from CSV.

    CSV Format Expected:
        name,phone,email,notes,source
        Ana Ruiz,5512345678,ana@example.com,,web

    Each row is created like a single contact (normalized, scored).
    Duplicates are skipped; other bad rows are reported with row numbers.
    """
    if not file.filename or not file.filename.lower().endswith('.csv'):
        raise HTTPException(status_code=400, detail="Only CSV files are supported")

    content = await file.read()
    text_content = None

    for encoding in ['utf-8', 'utf-8-sig', 'latin-1']:
        try:
            text_content = content.decode(encoding)
            break
        except UnicodeDecodeError:
            continue

    if text_content is None:
        raise HTTPException(status_code=400, detail="Unable to decode CSV file. Please use UTF-8 encoding.")

    csv_reader = csv.DictReader(io.StringIO(text_content.lstrip("\ufeff")))

    if csv_reader.fieldnames:
        headers = {h.lower().strip() for h in csv_reader.fieldnames if h}
        if not headers & set(CSV_COLUMNS["phone"]) or not headers & set(CSV_COLUMNS["name"]):
            raise HTTPException(
                status_code=400,
                detail=f"CSV must have 'name' and 'phone' columns. Found: {', '.join(csv_reader.fieldnames)}"
            )

    total_rows = 0
    imported = 0
    duplicates_skipped = 0
    errors: List[ImportRowError] = []

    for row_num, row in enumerate(csv_reader, start=2):  # Row 1 is header
        total_rows += 1
        values = _read_csv_row(row)

        try:
            await service.create_contact(ContactCreate(**values))
            imported += 1
        except DuplicateRecordError:
            duplicates_skipped += 1
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(p) for p in first.get("loc", ()))
            errors.append(ImportRowError(row=row_num, error=f"{field}: {first.get('msg')}", phone=values.get("phone")))
        except SalesCRMError as e:
            errors.append(ImportRowError(row=row_num, error=e.message, phone=values.get("phone")))

    logger.info(
        f"CSV import finished: total={total_rows}, imported={imported}, "
        f"duplicates={duplicates_skipped}, failed={len(errors)}"
    )

    return BulkImportResponse(
        total_rows=total_rows,
        imported=imported,
        failed=len(errors),
        duplicates_skipped=duplicates_skipped,
        errors=errors
    )


@router.get("", response_model=ContactListResponse)
async def list_contacts(
    status: Optional[ContactStatus] = Query(None),
    assigned_advisor_id: Optional[int] = Query(None),
    unassigned_only: bool = Query(False),
    is_suspicious: Optional[bool] = Query(None),
    min_quality_score: Optional[int] = Query(None, ge=0, le=100),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=200),
    service: ContactService = Depends(get_contact_service)
):
    """List contacts, newest first"""
    filters = ContactFilters(
        status=status,
        assigned_advisor_id=assigned_advisor_id,
        unassigned_only=unassigned_only,
        is_suspicious=is_suspicious,
        min_quality_score=min_quality_score,
    )
    contacts, total = await service.list_contacts(filters, page=page, page_size=page_size)
    return ContactListResponse(contacts=contacts, total=total, page=page, page_size=page_size)


@router.get("/{contact_id}", response_model=Contact)
async def get_contact(contact_id: int, service: ContactService = Depends(get_contact_service)):
    try:
        return await service.get_contact(contact_id)
    except SalesCRMError as e:
        raise to_http_error(e)


@router.put("/{contact_id}", response_model=Contact)
async def update_contact(
    contact_id: int,
    data: ContactUpdate,
    service: ContactService = Depends(get_contact_service)
):
    """Partial update; name, phone or email changes trigger a re-score"""
    try:
        return await service.update_contact(contact_id, data)
    except SalesCRMError as e:
        raise to_http_error(e)
    except Exception as e:
        logger.error(f"Error updating contact {contact_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{contact_id}/interactions", response_model=Contact)
async def record_interaction(
    contact_id: int,
    interaction: Interaction,
    service: ContactService = Depends(get_contact_service)
):
    try:
        return await service.record_interaction(contact_id, interaction)
    except SalesCRMError as e:
        raise to_http_error(e)
