"""
Bible Marathon Statistics API Routes
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from marathon.api.responses import success_response
from marathon.core.exceptions import MarathonException
from marathon.db.sqlite import get_db
from marathon.models.marathon import MarathonConfigResponse
from marathon.models.stats import CompleteStats
from marathon.services.stats_service import stats_service

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("")
async def get_stats(db: Session = Depends(get_db)):
    """
    Get general, per-reader and per-book statistics with the active marathon
    """
    try:
        stats = stats_service.complete_stats(db)
        marathon = stats["marathon"]
        response = CompleteStats(
            general=stats["general"],
            readers=stats["readers"],
            books=stats["books"],
            marathon=MarathonConfigResponse.model_validate(marathon) if marathon else None
        )
        return success_response(response, "Statistics retrieved successfully")

    except MarathonException: raise
    except Exception as e:
        logger.error(f"Failed to get statistics: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get statistics: {str(e)}"
        )
