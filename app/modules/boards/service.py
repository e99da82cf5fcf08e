from supabase import Client
from app.modules.boards.schemas import BoardCreate, BoardResponse
from typing import List
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


class BoardService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def create_board(self, company_id: str, board_data: BoardCreate, user_id: str) -> BoardResponse:
        """Create a board inside a company"""
        name = board_data.name.strip()
        if not name:
            raise HTTPException(status_code=400, detail="Board name is required")
        try:
            result = self.supabase.table("boards").insert({
                "name": name,
                "company_id": company_id,
                "created_by": user_id
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create board")

            logger.info(f"Board {result.data[0]['id']} created in company {company_id}")
            return BoardResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creating board: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def list_boards(self, company_id: str) -> List[BoardResponse]:
        """Boards of a company, newest first"""
        try:
            result = self.supabase.table("boards")\
                .select("*")\
                .eq("company_id", company_id)\
                .order("created_at", desc=True)\
                .execute()
            return [BoardResponse(**board) for board in (result.data or [])]
        except Exception as e:
            logger.error(f"Error fetching boards for company {company_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))
