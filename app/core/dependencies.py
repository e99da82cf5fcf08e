"""
Core dependencies for route protection and company role checks
"""

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.database.supabase_client import SupabaseClient, get_supabase, get_service_supabase
from app.modules.auth.service import AuthService
from app.core.session import AuthContext
from supabase import Client
from typing import Any, Dict, Iterator
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_token(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """Extract JWT token from Authorization header"""
    return credentials.credentials


def get_current_user_id(
    token: str = Depends(get_current_token),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    return auth_service.get_current_user(token)


def get_user_supabase(user_data: Dict = Depends(get_current_user_id)) -> Client:
    """Client acting as the caller; needed by remote procedures that read auth.uid()"""
    return SupabaseClient.get_user_client(user_data["access_token"])


def get_auth_context(
    user_data: Dict = Depends(get_current_user_id),
    supabase: Client = Depends(get_service_supabase)
) -> Iterator[AuthContext]:
    """Session context with the caller's memberships, disposed after the request"""
    context = AuthContext(user_data, supabase).init()
    try:
        yield context
    finally:
        context.dispose()


def require_company_permission(required_permission: str):
    """Factory for a dependency that checks the caller's role in the path's company_id"""
    def check_permission(
        company_id: str,
        context: AuthContext = Depends(get_auth_context)
    ) -> AuthContext:
        context.require(company_id, required_permission)
        return context
    return check_permission


def get_board_row(board_id: str, supabase: Client) -> Dict[str, Any]:
    result = supabase.table("boards")\
        .select("*")\
        .eq("id", board_id)\
        .maybe_single()\
        .execute()
    if result is None or not result.data:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Board not found"
        )
    return result.data


def require_board_permission(required_permission: str):
    """Factory for a dependency that resolves the path's board_id to its company and checks the caller's role there"""
    def check_permission(
        board_id: str,
        context: AuthContext = Depends(get_auth_context),
        supabase: Client = Depends(get_service_supabase)
    ) -> Dict[str, Any]:
        board = get_board_row(board_id, supabase)
        context.require(board["company_id"], required_permission)
        return board
    return check_permission
