from supabase import Client
from app.modules.companies.schemas import (
    CompanyCreate, CompanyResponse, CompanyWithRoleResponse,
    CompanyUserResponse, UserCompanyRoleResponse
)
from app.modules.profiles.service import ProfileService
from app.config.permissions_config import COMPANY_ROLES
from typing import List
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


class CompanyService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def grant_role(self, company_id: str, user_id: str, role: str) -> UserCompanyRoleResponse:
        """Create or replace the single role row for (user_id, company_id)"""
        if role not in COMPANY_ROLES:
            raise HTTPException(status_code=400, detail=f"Invalid role: {role}")
        result = self.supabase.table("user_company_roles").upsert({
            "user_id": user_id,
            "company_id": company_id,
            "role": role
        }, on_conflict="user_id,company_id").execute()

        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to assign company role")

        return UserCompanyRoleResponse(**result.data[0])

    def create_company(self, company_data: CompanyCreate, user_id: str) -> CompanyResponse:
        """Create a company; the creator becomes its first Admin"""
        name = company_data.name.strip()
        if not name:
            raise HTTPException(status_code=400, detail="Company name is required")
        try:
            result = self.supabase.table("companies").insert({
                "name": name,
                "created_by": user_id
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create company")

            company = result.data[0]
            self.grant_role(company["id"], user_id, "Admin")
            logger.info(f"Company {company['id']} created by {user_id}")

            return CompanyResponse(**company)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creating company: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def get_company(self, company_id: str) -> CompanyResponse:
        """Get company by ID"""
        try:
            result = self.supabase.table("companies")\
                .select("*")\
                .eq("id", company_id)\
                .maybe_single()\
                .execute()

            if result is None or not result.data:
                raise HTTPException(status_code=404, detail="Company not found")

            return CompanyResponse(**result.data)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_companies_for_user(self, user_id: str) -> List[CompanyWithRoleResponse]:
        """Companies the user has a role in, each annotated with that role"""
        try:
            roles_result = self.supabase.table("user_company_roles")\
                .select("company_id, role")\
                .eq("user_id", user_id)\
                .execute()
            if not roles_result.data:
                return []
            role_by_company = {r["company_id"]: r["role"] for r in roles_result.data}

            companies_result = self.supabase.table("companies")\
                .select("id, name, created_at")\
                .in_("id", list(role_by_company.keys()))\
                .execute()

            return [
                CompanyWithRoleResponse(
                    id=company["id"],
                    name=company["name"],
                    created_at=company.get("created_at"),
                    role=role_by_company.get(company["id"], "Unknown")
                )
                for company in (companies_result.data or [])
            ]
        except Exception as e:
            logger.error(f"Error fetching companies for user {user_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def list_company_users(self, company_id: str) -> List[CompanyUserResponse]:
        """Members of a company with their profile, oldest membership first"""
        try:
            roles_result = self.supabase.table("user_company_roles")\
                .select("user_id, role, created_at")\
                .eq("company_id", company_id)\
                .order("created_at", desc=False)\
                .execute()
            if not roles_result.data:
                return []

            profiles = ProfileService(self.supabase).get_profiles(
                [r["user_id"] for r in roles_result.data]
            )
            users = []
            for role_row in roles_result.data:
                profile = profiles.get(role_row["user_id"]) or {}
                users.append(CompanyUserResponse(
                    id=role_row["user_id"],
                    name=profile.get("name") or "Unknown User",
                    email=profile.get("email") or "No email",
                    role=role_row["role"],
                    created_at=role_row.get("created_at")
                ))
            return users
        except Exception as e:
            logger.error(f"Error fetching users for company {company_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def get_user_role(self, company_id: str, user_id: str):
        result = self.supabase.table("user_company_roles")\
            .select("role")\
            .eq("company_id", company_id)\
            .eq("user_id", user_id)\
            .execute()
        return result.data[0]["role"] if result.data else None
