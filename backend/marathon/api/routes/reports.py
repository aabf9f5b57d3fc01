"""
Bible Marathon Realtime Report API Routes
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from marathon.api.responses import success_response
from marathon.core.exceptions import MarathonException
from marathon.db.sqlite import get_db
from marathon.models.stats import ActiveReader, RealtimeStats
from marathon.services.realtime_service import realtime_service

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/realtime/stats")
async def get_realtime_stats(db: Session = Depends(get_db)):
    """
    Get overall progress with the current pace and completion estimates
    """
    try:
        stats = realtime_service.realtime_stats(db)
        return success_response(RealtimeStats(**stats), "Realtime statistics retrieved successfully")

    except MarathonException: raise
    except Exception as e:
        logger.error(f"Failed to get realtime statistics: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get realtime statistics: {str(e)}"
        )

@router.get("/realtime/active-readers")
async def get_active_readers(db: Session = Depends(get_db)):
    """
    Get readers with activity in the last window, most recent first
    """
    try:
        readers = realtime_service.active_readers(db)
        return success_response(
            [ActiveReader(**reader) for reader in readers],
            f"{len(readers)} active readers"
        )

    except MarathonException: raise
    except Exception as e:
        logger.error(f"Failed to get active readers: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get active readers: {str(e)}"
        )
