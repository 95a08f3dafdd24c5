"""Lead router - public inquiry form and admin lead kanban endpoints"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...models import User
from ...services.openphone_service import OpenPhoneService, get_openphone_service
from ...shared.permissions import MANAGE_CUSTOMERS
from .schemas import InquirySubmit, LeadFromBooking, LeadResponse, LeadStatusUpdate, LeadUpdate
from .service import LeadService

router = APIRouter(prefix="/admin/leads", tags=["Leads"])
public_router = APIRouter(prefix="/inquiries", tags=["Public"])


def get_lead_service(
    db: Session = Depends(get_db),
    openphone_service: OpenPhoneService = Depends(get_openphone_service),
) -> LeadService:
    """Dependency injection for LeadService"""
    return LeadService(db, openphone_service)


@public_router.post("", status_code=201)
async def submit_inquiry(data: InquirySubmit, service: LeadService = Depends(get_lead_service)):
    """Public booking inquiry form; no authentication"""
    return await service.submit_inquiry(data)


# ============================================================================
# ADMIN KANBAN
# ============================================================================


@router.get("", response_model=dict[str, list[LeadResponse]])
async def list_leads(
    current_user: User = Depends(require_admin(MANAGE_CUSTOMERS)),
    service: LeadService = Depends(get_lead_service),
):
    columns = service.list_leads_by_status()
    return {status: [LeadResponse.from_lead(lead) for lead in leads] for status, leads in columns.items()}


@router.post("/from-booking", response_model=LeadResponse, status_code=201)
async def create_lead_from_booking(
    data: LeadFromBooking,
    current_user: User = Depends(require_admin(MANAGE_CUSTOMERS)),
    service: LeadService = Depends(get_lead_service),
):
    return LeadResponse.from_lead(await service.create_from_booking(data))


@router.patch("/{lead_id}/status", response_model=LeadResponse)
async def update_lead_status(
    lead_id: int,
    data: LeadStatusUpdate,
    current_user: User = Depends(require_admin(MANAGE_CUSTOMERS)),
    service: LeadService = Depends(get_lead_service),
):
    return LeadResponse.from_lead(service.update_status(lead_id, data.status))


@router.put("/{lead_id}", response_model=LeadResponse)
async def update_lead(
    lead_id: int,
    data: LeadUpdate,
    current_user: User = Depends(require_admin(MANAGE_CUSTOMERS)),
    service: LeadService = Depends(get_lead_service),
):
    return LeadResponse.from_lead(service.update_lead(lead_id, data))


@router.delete("/{lead_id}")
async def delete_lead(
    lead_id: int,
    current_user: User = Depends(require_admin(MANAGE_CUSTOMERS)),
    service: LeadService = Depends(get_lead_service),
):
    return service.delete_lead(lead_id)
