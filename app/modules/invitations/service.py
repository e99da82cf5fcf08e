import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from supabase import Client

from app.config.settings import settings
from app.core import email as email_sender
from app.modules.companies.service import CompanyService
from app.modules.profiles.service import ProfileService
from app.modules.invitations.schemas import (
    InvitationCreate, InvitationResponse, InvitationCreateResponse,
    AccessCodeCreate, AccessCodeResponse, RedemptionResponse
)

logger = logging.getLogger(__name__)

ACCESS_CODE_BYTES = 4  # 4 bytes = 8 hex characters
UNEXPECTED_RESPONSE = "Unexpected response from server"


def generate_access_code() -> str:
    """8-character uppercase hex code from a CSPRNG"""
    return secrets.token_hex(ACCESS_CODE_BYTES).upper()


def generate_invitation_token() -> str:
    return str(uuid.uuid4())


class InvitationService:
    """Issues, lists and cancels invitations (email tokens and access codes)"""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def invite_by_email(self, company_id: str, invite_data: InvitationCreate) -> InvitationCreateResponse:
        """Insert a pending invitation, then email the accept link.

        A failed insert aborts before anything is sent. A failed send leaves the
        invitation in place and is reported as a warning.
        """
        email = str(invite_data.email).strip()
        token = generate_invitation_token()
        expiration = datetime.now(timezone.utc) + timedelta(days=settings.invitation_expiry_days)
        try:
            result = self.supabase.table("company_invitations").insert({
                "company_id": company_id,
                "email": email,
                "role": invite_data.role,
                "status": "pending",
                "token": token,
                "validated": False,
                "expiration_date": expiration.isoformat()
            }).execute()
        except Exception as e:
            logger.error(f"Error inserting invitation for {email}: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to create invitation: {str(e)}")

        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create invitation")

        invitation = InvitationResponse(**result.data[0])
        email_sent = email_sender.send_invitation_email(email, token)
        warning = None
        if not email_sent:
            logger.warning(f"Invitation {invitation.id} stored but email to {email} was not sent")
            warning = "Invitation created but the email could not be sent. Share the invitation again later."
        return InvitationCreateResponse(invitation=invitation, email_sent=email_sent, warning=warning)

    def list_pending_invitations(self, company_id: str) -> List[InvitationResponse]:
        """Pending invitations of a company, newest first"""
        try:
            result = self.supabase.table("company_invitations")\
                .select("*")\
                .eq("company_id", company_id)\
                .eq("status", "pending")\
                .order("created_at", desc=True)\
                .execute()
            return [InvitationResponse(**row) for row in (result.data or [])]
        except Exception as e:
            logger.error(f"Error fetching invitations for company {company_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def _get_invitation(self, company_id: str, invitation_id: str) -> Dict[str, Any]:
        result = self.supabase.table("company_invitations")\
            .select("*")\
            .eq("id", invitation_id)\
            .eq("company_id", company_id)\
            .maybe_single()\
            .execute()
        if result is None or not result.data:
            raise HTTPException(status_code=404, detail="Invitation not found")
        return result.data

    def cancel_invitation(self, company_id: str, invitation_id: str) -> InvitationResponse:
        """pending -> cancelled"""
        try:
            invitation = self._get_invitation(company_id, invitation_id)
            if invitation.get("status") != "pending" or invitation.get("validated"):
                raise HTTPException(status_code=409, detail="Only pending invitations can be cancelled")
            result = self.supabase.table("company_invitations")\
                .update({"status": "cancelled"})\
                .eq("id", invitation_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Invitation not found")
            return InvitationResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error cancelling invitation {invitation_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def _code_in_use(self, code: str) -> bool:
        result = self.supabase.table("company_invitations")\
            .select("id")\
            .eq("access_code", code)\
            .eq("validated", False)\
            .limit(1)\
            .execute()
        return bool(result.data)

    def _mint_unique_code(self) -> str:
        for attempt in range(settings.access_code_max_attempts):
            code = generate_access_code()
            if not self._code_in_use(code):
                return code
            logger.info(f"Access code collision on attempt {attempt + 1}, regenerating")
        raise HTTPException(status_code=503, detail="Could not generate a unique access code, please retry")

    def generate_access_code(self, company_id: str, code_data: AccessCodeCreate) -> AccessCodeResponse:
        """Mint a code for a known user (email given) or an open code (no email)"""
        try:
            target_user_id: Optional[str] = None
            email = ""
            if code_data.email:
                profile = ProfileService(self.supabase).find_by_email(str(code_data.email))
                if profile is None:
                    raise HTTPException(status_code=404, detail="No user found with this email")
                target_user_id = profile.id
                email = profile.email

                if CompanyService(self.supabase).get_user_role(company_id, target_user_id):
                    raise HTTPException(status_code=409, detail="User is already a member of this company")

                pending = self.supabase.table("company_invitations")\
                    .select("id")\
                    .eq("company_id", company_id)\
                    .eq("user_id", target_user_id)\
                    .eq("status", "pending")\
                    .eq("validated", False)\
                    .not_.is_("access_code", "null")\
                    .execute()
                if pending.data:
                    raise HTTPException(status_code=409, detail="User already has a pending access code for this company")

            code = self._mint_unique_code()
            result = self.supabase.table("company_invitations").insert({
                "company_id": company_id,
                "user_id": target_user_id,
                "email": email,
                "access_code": code,
                "role": code_data.role,
                "status": "pending",
                "token": generate_invitation_token(),
                "validated": False,
                "expiration_date": None
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create access code")

            logger.info(f"Access code created for company {company_id} ({'targeted' if target_user_id else 'open'})")
            return AccessCodeResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error generating access code for company {company_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def list_access_codes(self, company_id: str) -> List[AccessCodeResponse]:
        """All access-code invitations of a company (used and pending), newest first"""
        try:
            result = self.supabase.table("company_invitations")\
                .select("*")\
                .eq("company_id", company_id)\
                .not_.is_("access_code", "null")\
                .order("created_at", desc=True)\
                .execute()
            return [AccessCodeResponse(**row) for row in (result.data or [])]
        except Exception as e:
            logger.error(f"Error fetching access codes for company {company_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def delete_access_code(self, company_id: str, invitation_id: str) -> bool:
        try:
            invitation = self._get_invitation(company_id, invitation_id)
            if not invitation.get("access_code"):
                raise HTTPException(status_code=404, detail="Access code not found")
            result = self.supabase.table("company_invitations")\
                .delete()\
                .eq("id", invitation_id)\
                .execute()
            return bool(result.data)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error deleting access code {invitation_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))


class RedemptionService:
    """Redeems tokens and access codes through the transactional remote procedures.

    The client must act as the redeeming user (see get_user_supabase); the
    procedures take the user from auth.uid().
    """

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def accept_invitation(self, token: str) -> RedemptionResponse:
        token = (token or "").strip()
        if not token:
            raise HTTPException(status_code=400, detail="Invalid invitation token")
        return self._redeem(
            "accept_company_invitation",
            {"invitation_token": token},
            "Failed to accept invitation"
        )

    def redeem_access_code(self, code: str) -> RedemptionResponse:
        code = (code or "").strip().upper()
        if not code:
            raise HTTPException(status_code=400, detail="Access code is required")
        return self._redeem(
            "validate_access_code",
            {"code": code},
            "Invalid or already used code"
        )

    def _redeem(self, procedure: str, params: Dict[str, Any], failure_message: str) -> RedemptionResponse:
        try:
            response = self.supabase.rpc(procedure, params).execute()
        except Exception as e:
            logger.error(f"Error calling {procedure}: {e}")
            raise HTTPException(status_code=500, detail=str(e) or failure_message)

        data = response.data if response is not None else None
        if isinstance(data, list) and len(data) == 1:
            data = data[0]
        if not isinstance(data, dict) or "success" not in data:
            logger.error(f"{procedure} returned an unexpected payload: {data!r}")
            raise HTTPException(status_code=502, detail=UNEXPECTED_RESPONSE)

        if not data["success"]:
            raise HTTPException(status_code=400, detail=data.get("error") or failure_message)

        if not data.get("company_id") or not data.get("role"):
            logger.error(f"{procedure} succeeded without company_id/role: {data!r}")
            raise HTTPException(status_code=502, detail=UNEXPECTED_RESPONSE)

        logger.info(f"{procedure} granted role {data['role']} in company {data['company_id']}")
        return RedemptionResponse(success=True, company_id=data["company_id"], role=data["role"])
