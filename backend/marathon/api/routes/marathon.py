"""
Bible Marathon Configuration API Routes
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from marathon.api.responses import success_response
from marathon.core.exceptions import MarathonException
from marathon.db.sqlite import get_db
from marathon.models.marathon import MarathonConfigResponse, MarathonConfigUpdate
from marathon.services.marathon_service import marathon_service

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/config")
async def get_marathon_config(db: Session = Depends(get_db)):
    """
    Get the active marathon, data is null when none is active
    """
    try:
        config = marathon_service.get_active_config(db)
        if not config:
            return success_response(None, "No active marathon")
        return success_response(MarathonConfigResponse.model_validate(config), "Marathon retrieved successfully")

    except MarathonException: raise
    except Exception as e:
        logger.error(f"Failed to get marathon config: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get marathon config: {str(e)}"
        )

@router.put("/config")
async def update_marathon_config(config_update: MarathonConfigUpdate, db: Session = Depends(get_db)):
    """
    Update the active marathon, creating it when none exists
    """
    try:
        config = marathon_service.update_config(db, config_update)
        return success_response(MarathonConfigResponse.model_validate(config), "Marathon updated successfully")

    except MarathonException: raise
    except Exception as e:
        logger.error(f"Failed to update marathon config: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update marathon config: {str(e)}"
        )
