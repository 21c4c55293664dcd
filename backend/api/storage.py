from fastapi import APIRouter, Depends

from auth import get_current_user_id
from schemas import StorageSummaryResponse
from services import storage_service

router = APIRouter(prefix="/api/storage", tags=["storage"])


@router.get("", response_model=StorageSummaryResponse)
async def read_storage(
    user_id: str = Depends(get_current_user_id),
) -> StorageSummaryResponse:
    return await storage_service.get_storage_summary()
