"""
Bible Marathon Reading Progress API Routes
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from marathon.api.responses import success_response
from marathon.core.exceptions import MarathonException
from marathon.db.sqlite import get_db
from marathon.models.progress import (
    ChapterMarkResponse, ChapterProgressRequest, ChapterUnmarkRequest, ChapterUnmarkResponse,
    ProgressResponse, ProgressRow, ReaderProgressRow, VerseMarkResponse, VerseProgressRequest
)
from marathon.services.progress_service import progress_service
from marathon.services.reader_service import reader_service

router = APIRouter()
logger = logging.getLogger(__name__)

@router.post("")
async def mark_verse(progress_request: VerseProgressRequest, db: Session = Depends(get_db)):
    """
    Mark a single verse read or unread
    """
    try:
        result = progress_service.mark_verse(
            db,
            reader_id=progress_request.reader_id,
            verse_id=progress_request.verse_id,
            is_read=progress_request.is_read,
            notes=progress_request.notes
        )
        response = VerseMarkResponse(
            progress=ProgressResponse.model_validate(result["progress"]),
            changed=result["changed"],
            total_verses_read=result["total_verses_read"],
            total_chapters_read=result["total_chapters_read"]
        )
        return success_response(response, "Progress updated successfully")

    except MarathonException: raise
    except Exception as e:
        logger.error(f"Failed to update progress: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update progress: {str(e)}"
        )

@router.post("/chapter")
async def mark_chapter(chapter_request: ChapterProgressRequest, db: Session = Depends(get_db)):
    """
    Mark every verse of a chapter as read for one reader.
    Verses that fail are reported, the rest stay marked.
    """
    try:
        reader = reader_service.resolve_reader(db, chapter_request.reader_id, chapter_request.reader_name)
        result = progress_service.mark_chapter(
            db,
            reader_id=reader.id,
            book_key=chapter_request.book_key,
            chapter_number=chapter_request.chapter_number,
            notes=chapter_request.notes
        )

        message = f"{result['success_count']}/{result['total_verses']} verses marked"
        if result["failed_count"]:
            message += f", {result['failed_count']} failed"
        return success_response(ChapterMarkResponse(**result), message)

    except MarathonException: raise
    except Exception as e:
        logger.error(f"Failed to mark chapter: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to mark chapter: {str(e)}"
        )

@router.delete("/chapter")
async def unmark_chapter(unmark_request: ChapterUnmarkRequest, db: Session = Depends(get_db)):
    """
    Remove one reader's progress on a chapter
    """
    try:
        reader = reader_service.resolve_reader(db, unmark_request.reader_id, unmark_request.reader_name)
        result = progress_service.unmark_chapter(
            db,
            reader_id=reader.id,
            book_key=unmark_request.book_key,
            chapter_number=unmark_request.chapter_number
        )
        return success_response(
            ChapterUnmarkResponse(**result),
            f"Chapter {result['chapter_number']} unmarked for {result['reader_name']}"
        )

    except MarathonException: raise
    except Exception as e:
        logger.error(f"Failed to unmark chapter: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to unmark chapter: {str(e)}"
        )

@router.get("/all")
async def list_all_progress(db: Session = Depends(get_db)):
    """
    Get every progress row flattened with reader, book, chapter and verse
    """
    try:
        rows = progress_service.all_progress(db)
        return success_response([ProgressRow(**row) for row in rows], "Progress retrieved successfully")

    except MarathonException: raise
    except Exception as e:
        logger.error(f"Failed to list progress: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to list progress: {str(e)}"
        )

@router.get("/{reader_id}")
async def get_reader_progress(reader_id: int, chapter_id: Optional[int] = None, db: Session = Depends(get_db)):
    """
    Get the progress rows of one reader
    """
    try:
        rows = progress_service.reader_progress(db, reader_id, chapter_id)
        return success_response([ReaderProgressRow(**row) for row in rows], "Progress retrieved successfully")

    except MarathonException: raise
    except Exception as e:
        logger.error(f"Failed to get progress of reader {reader_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get reader progress: {str(e)}"
        )
