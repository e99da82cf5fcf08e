from fastapi import APIRouter, Depends
from app.database.supabase_client import get_service_supabase
from app.modules.boards.schemas import BoardCreate, BoardResponse
from app.modules.boards.service import BoardService
from app.core.dependencies import require_company_permission, require_board_permission
from app.core.session import AuthContext
from supabase import Client
from typing import List, Dict

router = APIRouter(tags=["boards"])


def get_board_service(supabase: Client = Depends(get_service_supabase)) -> BoardService:
    return BoardService(supabase)


@router.post("/companies/{company_id}/boards", response_model=BoardResponse, status_code=201)
async def create_board(
    company_id: str,
    board_data: BoardCreate,
    context: AuthContext = Depends(require_company_permission("boards:create")),
    service: BoardService = Depends(get_board_service)
):
    """Create a board (Admin or Member)"""
    return service.create_board(company_id, board_data, context.user_id)


@router.get("/companies/{company_id}/boards", response_model=List[BoardResponse])
async def list_boards(
    company_id: str,
    _=Depends(require_company_permission("boards:read")),
    service: BoardService = Depends(get_board_service)
):
    return service.list_boards(company_id)


@router.get("/boards/{board_id}", response_model=BoardResponse)
async def get_board(
    board_id: str,
    board: Dict = Depends(require_board_permission("boards:read"))
):
    """Get board by ID (company members only)"""
    return BoardResponse(**board)
