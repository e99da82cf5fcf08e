from fastapi import APIRouter, Depends
from app.database.supabase_client import get_service_supabase
from app.modules.invitations.schemas import (
    InvitationCreate, InvitationResponse, InvitationCreateResponse,
    AccessCodeCreate, AccessCodeResponse,
    AcceptInvitationRequest, RedeemAccessCodeRequest, RedemptionResponse
)
from app.modules.invitations.service import InvitationService, RedemptionService
from app.core.dependencies import require_company_permission, get_user_supabase
from supabase import Client
from typing import List

router = APIRouter(tags=["invitations"])


def get_invitation_service(supabase: Client = Depends(get_service_supabase)) -> InvitationService:
    return InvitationService(supabase)


def get_redemption_service(supabase: Client = Depends(get_user_supabase)) -> RedemptionService:
    return RedemptionService(supabase)


@router.post("/companies/{company_id}/invitations", response_model=InvitationCreateResponse, status_code=201)
async def invite_by_email(
    company_id: str,
    invite_data: InvitationCreate,
    _=Depends(require_company_permission("invitations:create")),
    service: InvitationService = Depends(get_invitation_service)
):
    """Invite someone by email; a delivery failure comes back as a warning"""
    return service.invite_by_email(company_id, invite_data)


@router.get("/companies/{company_id}/invitations", response_model=List[InvitationResponse])
async def list_pending_invitations(
    company_id: str,
    _=Depends(require_company_permission("invitations:read")),
    service: InvitationService = Depends(get_invitation_service)
):
    return service.list_pending_invitations(company_id)


@router.delete("/companies/{company_id}/invitations/{invitation_id}", response_model=InvitationResponse)
async def cancel_invitation(
    company_id: str,
    invitation_id: str,
    _=Depends(require_company_permission("invitations:cancel")),
    service: InvitationService = Depends(get_invitation_service)
):
    """Cancel a pending invitation"""
    return service.cancel_invitation(company_id, invitation_id)


@router.post("/companies/{company_id}/access-codes", response_model=AccessCodeResponse, status_code=201)
async def generate_access_code(
    company_id: str,
    code_data: AccessCodeCreate,
    _=Depends(require_company_permission("invitations:create")),
    service: InvitationService = Depends(get_invitation_service)
):
    """Generate an access code for a registered user (email) or an open one (no email)"""
    return service.generate_access_code(company_id, code_data)


@router.get("/companies/{company_id}/access-codes", response_model=List[AccessCodeResponse])
async def list_access_codes(
    company_id: str,
    _=Depends(require_company_permission("invitations:read")),
    service: InvitationService = Depends(get_invitation_service)
):
    return service.list_access_codes(company_id)


@router.delete("/companies/{company_id}/access-codes/{invitation_id}", status_code=204)
async def delete_access_code(
    company_id: str,
    invitation_id: str,
    _=Depends(require_company_permission("invitations:cancel")),
    service: InvitationService = Depends(get_invitation_service)
):
    service.delete_access_code(company_id, invitation_id)
    return None


@router.post("/invitations/accept", response_model=RedemptionResponse)
async def accept_invitation(
    request: AcceptInvitationRequest,
    service: RedemptionService = Depends(get_redemption_service)
):
    """Redeem the token from an emailed /accept?token=... link"""
    return service.accept_invitation(request.token)


@router.post("/invitations/redeem-code", response_model=RedemptionResponse)
async def redeem_access_code(
    request: RedeemAccessCodeRequest,
    service: RedemptionService = Depends(get_redemption_service)
):
    """Redeem an 8-character access code"""
    return service.redeem_access_code(request.code)
