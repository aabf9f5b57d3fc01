"""
Bible Marathon Reference Data API Routes
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from marathon.api.responses import success_response
from marathon.core.exceptions import MarathonException
from marathon.db.sqlite import get_db
from marathon.models.bible import BookItem, ChapterWithVerses, Testament, VerseSearchResult
from marathon.models.stats import BookChapterStats
from marathon.services.bible_service import bible_service
from marathon.services.stats_service import stats_service

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/books")
async def list_books(testament: Optional[Testament] = None, db: Session = Depends(get_db)):
    """
    List books in canonical order, optionally for one testament
    """
    try:
        books = bible_service.list_books(db, testament)
        return success_response(
            [BookItem.model_validate(book) for book in books],
            "Books retrieved successfully"
        )

    except MarathonException: raise
    except Exception as e:
        logger.error(f"Failed to list books: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to list books: {str(e)}"
        )

@router.get("/books/{book_key}/chapters/{chapter_number}")
async def get_chapter(book_key: str, chapter_number: int, db: Session = Depends(get_db)):
    """
    Get a chapter with its ordered verses
    """
    try:
        chapter = bible_service.get_chapter_with_verses(db, book_key, chapter_number)
        return success_response(ChapterWithVerses(**chapter), "Chapter retrieved successfully")

    except MarathonException: raise
    except Exception as e:
        logger.error(f"Failed to get chapter {book_key} {chapter_number}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get chapter: {str(e)}"
        )

@router.get("/books/{book_key}/progress")
async def get_book_progress(book_key: str, db: Session = Depends(get_db)):
    """
    Get the completion of every chapter of a book
    """
    try:
        stats = stats_service.chapter_stats(db, book_key)
        return success_response(BookChapterStats(**stats), "Book progress retrieved successfully")

    except MarathonException: raise
    except Exception as e:
        logger.error(f"Failed to get progress of book {book_key}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get book progress: {str(e)}"
        )

@router.get("/search")
async def search_verses(
        q: str = Query(..., description="Text to search for"),
        testament: Optional[Testament] = None,
        limit: Optional[int] = Query(None, gt=0),
        db: Session = Depends(get_db)
):
    """
    Search verses by text
    """
    try:
        results = bible_service.search_verses(db, q, testament, limit)
        return success_response(
            [VerseSearchResult(**result) for result in results],
            f"{len(results)} verses found"
        )

    except MarathonException: raise
    except Exception as e:
        logger.error(f"Failed to search verses for '{q}': {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to search verses: {str(e)}"
        )
