from fastapi import APIRouter, Depends
from app.database.supabase_client import get_service_supabase
from app.modules.auth.schemas import (
    LoginRequest, RegisterRequest, TokenResponse, RegisterResponse, MeResponse
)
from app.modules.auth.service import AuthService
from app.modules.profiles.service import ProfileService
from app.core.dependencies import get_auth_service, get_current_token, get_auth_context
from app.core.session import AuthContext
from supabase import Client

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(
    register_data: RegisterRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Register a new user"""
    return service.register(register_data)


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service),
    supabase: Client = Depends(get_service_supabase)
):
    """Login and get access token; backfills the profile row when it is missing"""
    result = service.login(login_data)
    token: TokenResponse = result["token"]
    ProfileService(supabase).ensure_profile(token.user_id, token.email, result["user_metadata"])
    return token


@router.post("/logout", status_code=200)
async def logout(
    token: str = Depends(get_current_token),
    service: AuthService = Depends(get_auth_service)
):
    """Logout and invalidate token"""
    service.logout(token)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=MeResponse)
async def get_current_user(
    context: AuthContext = Depends(get_auth_context),
    supabase: Client = Depends(get_service_supabase)
):
    """Current user, display name and company memberships (for the dashboard)"""
    profiles = ProfileService(supabase).get_profiles([context.user_id])
    profile = profiles.get(context.user_id) or {}
    metadata = context.user.get("user_metadata") or {}
    return MeResponse(
        id=context.user_id,
        email=context.email,
        name=profile.get("name") or metadata.get("name"),
        companies=context.membership_list()
    )
