from supabase import Client
from app.modules.profiles.schemas import ProfileUpdate, ProfileResponse
from typing import Dict, List, Optional, Any
from fastapi import HTTPException
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so ilike() performs a case-insensitive exact match"""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ProfileService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_profile(self, user_id: str) -> ProfileResponse:
        """Get profile by user ID"""
        try:
            result = self.supabase.table("profiles")\
                .select("*")\
                .eq("id", user_id)\
                .maybe_single()\
                .execute()

            if result is None or not result.data:
                raise HTTPException(status_code=404, detail="Profile not found")

            return ProfileResponse(**result.data)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def find_by_email(self, email: str) -> Optional[ProfileResponse]:
        """Case-insensitive exact match on profiles.email"""
        normalized = email.strip()
        if not normalized:
            return None
        try:
            result = self.supabase.table("profiles")\
                .select("*")\
                .ilike("email", escape_like(normalized))\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Error looking up profile by email: {e}")
            raise HTTPException(status_code=500, detail=str(e))
        if not result.data:
            return None
        return ProfileResponse(**result.data[0])

    def get_profiles(self, user_ids: List[str]) -> Dict[str, Dict[str, Any]]:
        """Return {user_id: profile row} for the given ids"""
        if not user_ids:
            return {}
        result = self.supabase.table("profiles")\
            .select("id, name, email")\
            .in_("id", user_ids)\
            .execute()
        return {p["id"]: p for p in (result.data or [])}

    def update_profile(self, user_id: str, profile_data: ProfileUpdate) -> ProfileResponse:
        """Update the caller's profile"""
        try:
            update_data = {"updated_at": datetime.now(timezone.utc).isoformat()}
            if profile_data.name is not None:
                if not profile_data.name.strip():
                    raise HTTPException(status_code=400, detail="Name cannot be empty")
                update_data["name"] = profile_data.name.strip()

            result = self.supabase.table("profiles")\
                .update(update_data)\
                .eq("id", user_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Profile not found")

            return ProfileResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def ensure_profile(self, user_id: str, email: str, user_metadata: Optional[Dict[str, Any]] = None) -> Optional[ProfileResponse]:
        """Create the profile row if the sign-up trigger did not. Failures are logged, never raised."""
        metadata = user_metadata or {}
        try:
            existing = self.supabase.table("profiles")\
                .select("*")\
                .eq("id", user_id)\
                .maybe_single()\
                .execute()
            if existing is not None and existing.data:
                return ProfileResponse(**existing.data)

            logger.info(f"Creating missing profile for user {user_id}")
            result = self.supabase.table("profiles").insert({
                "id": user_id,
                "email": email or "",
                "name": metadata.get("name") or metadata.get("full_name") or "User"
            }).execute()
            if result.data:
                return ProfileResponse(**result.data[0])
        except Exception as e:
            logger.error(f"Error creating profile for user {user_id}: {e}")
        return None
