import hashlib
import time
import logging
from supabase import Client
from app.modules.auth.schemas import LoginRequest, RegisterRequest, TokenResponse, RegisterResponse
from fastapi import HTTPException
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

# In-memory cache for get_current_user to reduce Supabase auth calls (e.g. many parallel requests with same token)
_AUTH_USER_CACHE: Dict[str, tuple] = {}
_AUTH_CACHE_TTL_SEC = 60
_AUTH_CACHE_MAX_SIZE = 500

# (substring in provider message, status, message shown to the user)
SIGN_UP_ERRORS = [
    ("already registered", 400, "An account with this email already exists. Please try signing in instead."),
    ("already exists", 400, "An account with this email already exists. Please try signing in instead."),
    ("email_address_invalid", 400, "Please enter a valid email address."),
    ("password should be", 400, "Password must be at least 6 characters long."),
    ("signup is disabled", 403, "Account registration is currently disabled. Please contact support."),
]

SIGN_IN_ERRORS = [
    ("invalid login credentials", 401, "Invalid email or password. Please check your credentials and try again."),
    ("email not confirmed", 401, "Please check your email to confirm your account before signing in."),
    ("too many requests", 429, "Too many login attempts. Please wait a moment before trying again."),
]


def _friendly_error(error_message: str, table) -> Optional[HTTPException]:
    lowered = error_message.lower()
    for needle, status_code, detail in table:
        if needle in lowered:
            return HTTPException(status_code=status_code, detail=detail)
    return None


def clear_auth_cache() -> None:
    _AUTH_USER_CACHE.clear()


class AuthService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def register(self, register_data: RegisterRequest) -> RegisterResponse:
        """Register a new user using Supabase Auth"""
        logger.info(f"Starting sign up for {register_data.email}")
        try:
            auth_response = self.supabase.auth.sign_up({
                "email": register_data.email,
                "password": register_data.password,
                "options": {
                    "data": {
                        "name": register_data.name,
                        "full_name": register_data.name
                    }
                }
            })
        except Exception as e:
            logger.error(f"Sign up error for {register_data.email}: {e}")
            friendly = _friendly_error(str(e), SIGN_UP_ERRORS)
            if friendly:
                raise friendly
            raise HTTPException(status_code=500, detail=f"Registration failed: {str(e)}")

        if not auth_response.user:
            raise HTTPException(status_code=400, detail="Failed to register user")

        # The profile row is created by the database trigger on auth.users
        return RegisterResponse(
            user_id=auth_response.user.id,
            email=auth_response.user.email or register_data.email,
            message="User registered successfully",
            signed_in=auth_response.session is not None
        )

    def login(self, login_data: LoginRequest) -> Dict[str, Any]:
        """Authenticate user using Supabase Auth. Returns the token plus the raw user for profile backfill."""
        try:
            auth_response = self.supabase.auth.sign_in_with_password({
                "email": login_data.email,
                "password": login_data.password
            })
        except Exception as e:
            logger.error(f"Sign in error for {login_data.email}: {e}")
            friendly = _friendly_error(str(e), SIGN_IN_ERRORS)
            if friendly:
                raise friendly
            raise HTTPException(status_code=500, detail=f"Login failed: {str(e)}")

        if not auth_response.user or not auth_response.session:
            raise HTTPException(status_code=401, detail="Invalid email or password")

        user = auth_response.user
        token = TokenResponse(
            access_token=auth_response.session.access_token,
            token_type="bearer",
            user_id=user.id,
            email=user.email or login_data.email
        )
        return {"token": token, "user_metadata": user.user_metadata or {}}

    def get_current_user(self, token: str) -> Dict[str, Any]:
        """Get current user details from Supabase Auth token. Uses short TTL cache to reduce auth API calls."""
        try:
            cache_key = hashlib.sha256(token.encode()).hexdigest()
            now = time.monotonic()
            if cache_key in _AUTH_USER_CACHE:
                user_data, expiry = _AUTH_USER_CACHE[cache_key]
                if now < expiry:
                    return user_data
                del _AUTH_USER_CACHE[cache_key]
            user_response = self.supabase.auth.get_user(jwt=token)
            if not user_response or not user_response.user:
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            user = user_response.user
            user_data = {
                "id": user.id,
                "email": user.email,
                "user_metadata": user.user_metadata or {},
                "access_token": token
            }
            if len(_AUTH_USER_CACHE) < _AUTH_CACHE_MAX_SIZE:
                _AUTH_USER_CACHE[cache_key] = (user_data, now + _AUTH_CACHE_TTL_SEC)
            return user_data
        except HTTPException:
            raise
        except Exception as e:
            error_msg = str(e)
            if "JWT" in error_msg or "expired" in error_msg.lower() or "invalid" in error_msg.lower():
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            raise HTTPException(status_code=401, detail="Authentication failed")

    def logout(self, token: str) -> bool:
        """Sign out and drop the cached user for this token"""
        _AUTH_USER_CACHE.pop(hashlib.sha256(token.encode()).hexdigest(), None)
        try:
            self.supabase.auth.sign_out()
            return True
        except Exception as e:
            logger.error(f"Sign out error: {e}")
            return False
