"""
Bible Marathon Statistics Service - Completion metrics at every granularity
"""
import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional
from sqlalchemy import and_, distinct, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from marathon.core.exceptions import DatabaseException
from marathon.db.models import Book, Chapter, Reader, ReadingProgress, Verse
from marathon.services.bible_service import bible_service
from marathon.services.marathon_service import marathon_service

logger = logging.getLogger(__name__)

def completion_percentage(read: int, total: int) -> float:
    """
    Percentage of read verses in a scope
    Args:
        read: distinct read verses in the scope
        total: distinct verses in the scope
    Returns:
        Percentage rounded to 2 decimals, between 0 and 100, 0 for empty scopes
    """
    if not total or total <= 0: return 0.0
    percentage = min(100.0, max(0.0, (read / total) * 100.0))

    return round(percentage, 2)

class StatsService:
    """
    Aggregates reading progress over books, chapters, verses and readers.
    A verse counts as read only through a progress row with is_read true.
    """

    def _chapter_rows(self, db: Session, book_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Verse totals and distinct read verses of every chapter
        Args:
            db: database session
            book_id: optional book filter
        Returns:
            One dictionary per chapter ordered by book and chapter number
        """
        chapters = db.query(Chapter.id, Chapter.book_id, Chapter.chapter_number) \
            .join(Book, Chapter.book_id == Book.id)
        verse_totals = db.query(Verse.chapter_id, func.count(Verse.id)) \
            .join(Chapter, Verse.chapter_id == Chapter.id)
        read_totals = db.query(Verse.chapter_id, func.count(distinct(ReadingProgress.verse_id))) \
            .join(Verse, ReadingProgress.verse_id == Verse.id) \
            .join(Chapter, Verse.chapter_id == Chapter.id) \
            .filter(ReadingProgress.is_read.is_(True))

        if book_id is not None:
            chapters = chapters.filter(Chapter.book_id == book_id)
            verse_totals = verse_totals.filter(Chapter.book_id == book_id)
            read_totals = read_totals.filter(Chapter.book_id == book_id)

        verses_by_chapter = dict(verse_totals.group_by(Verse.chapter_id).all())
        read_by_chapter = dict(read_totals.group_by(Verse.chapter_id).all())

        return [
            {
                "chapter_id": chapter_id,
                "book_id": chapter_book_id,
                "chapter_number": chapter_number,
                "total_verses": verses_by_chapter.get(chapter_id, 0),
                "verses_read": read_by_chapter.get(chapter_id, 0)
            }
            for chapter_id, chapter_book_id, chapter_number in
            chapters.order_by(Book.order_index, Chapter.chapter_number).all()
        ]

    @staticmethod
    def _is_completed(chapter: Dict[str, Any]) -> bool:
        return chapter["total_verses"] > 0 and chapter["verses_read"] >= chapter["total_verses"]

    def general_stats(self, db: Session) -> Dict[str, Any]:
        """
        Whole-Bible totals and completion
        Args:
            db: database session
        Returns:
            Dictionary of global counters and percentages
        """
        try:
            total_books = db.query(func.count(Book.id)).scalar() or 0
            total_readers = db.query(func.count(Reader.id)).scalar() or 0
            active_readers = db.query(func.count(Reader.id)).filter(Reader.is_active.is_(True)).scalar() or 0

            verses_read, readers_with_progress = db.query(
                func.count(distinct(ReadingProgress.verse_id)),
                func.count(distinct(ReadingProgress.reader_id))
            ).join(Verse, ReadingProgress.verse_id == Verse.id) \
             .filter(ReadingProgress.is_read.is_(True)).one()

            chapters = self._chapter_rows(db)
            total_chapters = len(chapters)
            total_verses = sum(chapter["total_verses"] for chapter in chapters)
            chapters_read = sum(1 for chapter in chapters if chapter["verses_read"] > 0)
            chapters_completed = sum(1 for chapter in chapters if self._is_completed(chapter))
            books_with_progress = len({chapter["book_id"] for chapter in chapters if chapter["verses_read"] > 0})

            return {
                "total_books": total_books,
                "total_chapters": total_chapters,
                "total_verses": total_verses,
                "total_readers": total_readers,
                "active_readers": active_readers,
                "total_verses_read": verses_read or 0,
                "verses_remaining": max(0, total_verses - (verses_read or 0)),
                "completion_percentage": completion_percentage(verses_read or 0, total_verses),
                "total_chapters_read": chapters_read,
                "chapters_completed": chapters_completed,
                "chapters_completion_percentage": completion_percentage(chapters_completed, total_chapters),
                "books_with_progress": books_with_progress,
                "readers_with_progress": readers_with_progress or 0
            }

        except SQLAlchemyError as e:
            logger.error(f"Failed to compute general stats: {str(e)}")
            raise DatabaseException(f"Failed to compute general stats: {str(e)}")

    def book_stats(self, db: Session) -> List[Dict[str, Any]]:
        """Completion of every book in canonical order"""
        try:
            per_book = defaultdict(lambda: {"total_verses": 0, "verses_read": 0, "with_progress": 0, "completed": 0})
            for chapter in self._chapter_rows(db):
                entry = per_book[chapter["book_id"]]
                entry["total_verses"] += chapter["total_verses"]
                entry["verses_read"] += chapter["verses_read"]
                entry["with_progress"] += 1 if chapter["verses_read"] > 0 else 0
                entry["completed"] += 1 if self._is_completed(chapter) else 0

            results = []
            for book in db.query(Book).order_by(Book.order_index).all():
                entry = per_book[book.id]
                results.append({
                    "id": book.id,
                    "key": book.key,
                    "name": book.name,
                    "testament": book.testament,
                    "order_index": book.order_index,
                    "total_chapters": book.total_chapters,
                    "author": book.author,
                    "description": book.description,
                    "total_verses": entry["total_verses"],
                    "verses_read": entry["verses_read"],
                    "chapters_with_progress": entry["with_progress"],
                    "chapters_completed": entry["completed"],
                    "completion_percentage": completion_percentage(entry["verses_read"], entry["total_verses"])
                })
            return results

        except SQLAlchemyError as e:
            logger.error(f"Failed to compute book stats: {str(e)}")
            raise DatabaseException(f"Failed to compute book stats: {str(e)}")

    def chapter_stats(self, db: Session, book_key: str) -> Dict[str, Any]:
        """
        Completion of every chapter of a book with the names of its readers
        Args:
            db: database session
            book_key: book slug
        Returns:
            Dictionary with the book and its chapter list
        """
        book = bible_service.get_book_by_key(db, book_key)

        try:
            readers_by_chapter = defaultdict(set)
            rows = db.query(Verse.chapter_id, Reader.name) \
                .join(ReadingProgress, ReadingProgress.verse_id == Verse.id) \
                .join(Reader, ReadingProgress.reader_id == Reader.id) \
                .join(Chapter, Verse.chapter_id == Chapter.id) \
                .filter(Chapter.book_id == book.id, ReadingProgress.is_read.is_(True)) \
                .distinct().all()
            for chapter_id, reader_name in rows:
                readers_by_chapter[chapter_id].add(reader_name)

            chapters = [
                {
                    "chapter_id": chapter["chapter_id"],
                    "chapter_number": chapter["chapter_number"],
                    "total_verses": chapter["total_verses"],
                    "verses_read": chapter["verses_read"],
                    "completion_percentage": completion_percentage(chapter["verses_read"], chapter["total_verses"]),
                    "is_completed": self._is_completed(chapter),
                    "readers": sorted(readers_by_chapter.get(chapter["chapter_id"], set()))
                }
                for chapter in self._chapter_rows(db, book_id=book.id)
            ]

            return {
                "book_key": book.key,
                "book_name": book.name,
                "total_chapters": book.total_chapters,
                "chapters": chapters
            }

        except SQLAlchemyError as e:
            logger.error(f"Failed to compute chapter stats for {book_key}: {str(e)}")
            raise DatabaseException(f"Failed to compute chapter stats: {str(e)}")

    def reader_stats(self, db: Session, total_verses: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Live chapter and verse counts of every active reader, computed from progress rows
        Args:
            db: database session
            total_verses: verses in the whole Bible, queried when omitted
        Returns:
            Readers ordered by chapters read, verses read and name
        """
        try:
            if total_verses is None:
                total_verses = db.query(func.count(Verse.id)).scalar() or 0

            rows = db.query(
                Reader,
                func.count(distinct(ReadingProgress.verse_id)),
                func.count(distinct(ReadingProgress.chapter_id)),
                func.max(ReadingProgress.read_at)
            ).outerjoin(
                ReadingProgress,
                and_(ReadingProgress.reader_id == Reader.id, ReadingProgress.is_read.is_(True))
            ).filter(Reader.is_active.is_(True)).group_by(Reader.id).all()

            results = [
                {
                    "id": reader.id,
                    "uuid": reader.uuid,
                    "name": reader.name,
                    "email": reader.email,
                    "avatar_color": reader.avatar_color,
                    "is_active": reader.is_active,
                    "reading_speed_wpm": reader.reading_speed_wpm,
                    "total_chapters_read": chapters_read or 0,
                    "total_verses_read": verses_read or 0,
                    "completion_percentage": completion_percentage(verses_read or 0, total_verses),
                    "last_activity": last_activity
                }
                for reader, verses_read, chapters_read, last_activity in rows
            ]
            results.sort(key=lambda r: (-r["total_chapters_read"], -r["total_verses_read"], r["name"].lower()))
            return results

        except SQLAlchemyError as e:
            logger.error(f"Failed to compute reader stats: {str(e)}")
            raise DatabaseException(f"Failed to compute reader stats: {str(e)}")

    def complete_stats(self, db: Session) -> Dict[str, Any]:
        """Full payload: general, readers, books and the active marathon"""
        general = self.general_stats(db)
        stats = {
            "general": general,
            "readers": self.reader_stats(db, total_verses=general["total_verses"]),
            "books": self.book_stats(db),
            "marathon": marathon_service.get_active_config(db)
        }

        logger.info(
            f"Stats computed: {general['total_verses_read']}/{general['total_verses']} verses "
            f"({general['completion_percentage']:.2f}%)"
        )
        return stats

stats_service = StatsService()
