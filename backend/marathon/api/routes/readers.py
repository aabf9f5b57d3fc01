"""
Bible Marathon Reader Management API Routes
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from marathon.api.responses import success_response
from marathon.core.exceptions import MarathonException
from marathon.db.sqlite import get_db
from marathon.models.reader import (
    ReaderCounts, ReaderCreate, ReaderDetailResponse, ReaderResponse, ReaderUpdate
)
from marathon.services.reader_service import reader_service

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("")
async def list_readers(db: Session = Depends(get_db)):
    """
    List all readers with their cached counters
    """
    try:
        readers = reader_service.list_readers(db)
        return success_response(
            [ReaderResponse.model_validate(reader) for reader in readers],
            "Readers retrieved successfully"
        )

    except MarathonException: raise
    except Exception as e:
        logger.error(f"Failed to list readers: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to list readers: {str(e)}"
        )

@router.get("/{reader_id}")
async def get_reader(reader_id: int, db: Session = Depends(get_db)):
    """
    Get a reader with cached and live counters
    """
    try:
        reader = reader_service.get_reader(db, reader_id)
        cached = reader_service.cached_counts(reader)
        live = reader_service.live_counts(db, reader_id)

        response = ReaderDetailResponse(
            **ReaderResponse.model_validate(reader).model_dump(),
            live_counts=ReaderCounts(**live),
            counters_in_sync=cached == live
        )
        return success_response(response, "Reader retrieved successfully")

    except MarathonException: raise
    except Exception as e:
        logger.error(f"Failed to get reader {reader_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get reader: {str(e)}"
        )

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_reader(reader_data: ReaderCreate, db: Session = Depends(get_db)):
    """
    Create a reader
    """
    try:
        reader = reader_service.create_reader(db, reader_data)
        return success_response(ReaderResponse.model_validate(reader), "Reader created successfully")

    except MarathonException: raise
    except Exception as e:
        logger.error(f"Failed to create reader: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create reader: {str(e)}"
        )

@router.put("/{reader_id}")
async def update_reader(reader_id: int, reader_update: ReaderUpdate, db: Session = Depends(get_db)):
    """
    Update a reader's profile
    """
    try:
        reader = reader_service.update_reader(db, reader_id, reader_update)
        return success_response(ReaderResponse.model_validate(reader), "Reader updated successfully")

    except MarathonException: raise
    except Exception as e:
        logger.error(f"Failed to update reader {reader_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update reader: {str(e)}"
        )

@router.delete("/{reader_id}")
async def delete_reader(reader_id: int, db: Session = Depends(get_db)):
    """
    Delete a reader and its reading progress
    """
    try:
        deleted = reader_service.delete_reader(db, reader_id)
        return success_response(deleted, "Reader deleted successfully")

    except MarathonException: raise
    except Exception as e:
        logger.error(f"Failed to delete reader {reader_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete reader: {str(e)}"
        )
