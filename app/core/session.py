"""
Per-request session context: the authenticated user plus their company memberships.
Built by app.core.dependencies.get_auth_context and torn down when the request ends.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status
from supabase import Client

from app.config.permissions_config import role_has_permission

logger = logging.getLogger(__name__)


class AuthContext:
    def __init__(self, user: Dict[str, Any], supabase: Client):
        self.user = user
        self.supabase = supabase
        self.memberships: Dict[str, str] = {}
        self.ready = False

    @property
    def user_id(self) -> str:
        return self.user["id"]

    @property
    def email(self) -> Optional[str]:
        return self.user.get("email")

    def init(self) -> "AuthContext":
        """Load company_id -> role for the current user"""
        try:
            result = self.supabase.table("user_company_roles")\
                .select("company_id, role")\
                .eq("user_id", self.user_id)\
                .execute()
            self.memberships = {r["company_id"]: r["role"] for r in (result.data or [])}
        except Exception as e:
            logger.error(f"Error loading company roles for user {self.user_id}: {e}")
            self.memberships = {}
        self.ready = True
        return self

    def dispose(self) -> None:
        self.memberships = {}
        self.ready = False

    def role_in(self, company_id: str) -> Optional[str]:
        return self.memberships.get(company_id)

    def membership_list(self) -> List[Dict[str, str]]:
        return [{"company_id": c, "role": r} for c, r in self.memberships.items()]

    def require_member(self, company_id: str) -> str:
        role = self.role_in(company_id)
        if role is None:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You must be a member of this company"
            )
        return role

    def require(self, company_id: str, permission: str) -> str:
        role = self.require_member(company_id)
        if not role_has_permission(role, permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required: {permission}"
            )
        return role
