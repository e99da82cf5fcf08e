from fastapi import APIRouter, Depends
from app.database.supabase_client import get_service_supabase
from app.modules.companies.schemas import (
    CompanyCreate, CompanyResponse, CompanyWithRoleResponse, CompanyUserResponse
)
from app.modules.companies.service import CompanyService
from app.core.dependencies import get_current_user_id, require_company_permission
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/companies", tags=["companies"])


def get_company_service(supabase: Client = Depends(get_service_supabase)) -> CompanyService:
    return CompanyService(supabase)


@router.post("", response_model=CompanyResponse, status_code=201)
async def create_company(
    company_data: CompanyCreate,
    user_data: Dict = Depends(get_current_user_id),
    service: CompanyService = Depends(get_company_service)
):
    """Create a new company; any authenticated user may, and becomes its Admin"""
    return service.create_company(company_data, user_data["id"])


@router.get("", response_model=List[CompanyWithRoleResponse])
async def list_my_companies(
    user_data: Dict = Depends(get_current_user_id),
    service: CompanyService = Depends(get_company_service)
):
    """List companies the caller belongs to, with the caller's role"""
    return service.list_companies_for_user(user_data["id"])


@router.get("/{company_id}", response_model=CompanyResponse)
async def get_company(
    company_id: str,
    _=Depends(require_company_permission("companies:read")),
    service: CompanyService = Depends(get_company_service)
):
    """Get company by ID (members only)"""
    return service.get_company(company_id)


@router.get("/{company_id}/users", response_model=List[CompanyUserResponse])
async def list_company_users(
    company_id: str,
    _=Depends(require_company_permission("members:read")),
    service: CompanyService = Depends(get_company_service)
):
    """List company members with name, email and role"""
    return service.list_company_users(company_id)
