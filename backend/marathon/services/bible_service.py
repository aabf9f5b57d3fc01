"""
Bible Marathon Bible Service - Reference data queries and import
"""
import logging
import math
from typing import Any, Dict, List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from marathon.core.config import settings
from marathon.core.exceptions import (
    BookNotFoundException, ChapterNotFoundException, DatabaseException
)
from marathon.db.models import Book, Chapter, Verse
from marathon.models.bible import BibleImport, Testament

logger = logging.getLogger(__name__)

class BibleService:
    """Service for books, chapters and verses"""

    def __init__(self):
        self.search_limit = settings.SEARCH_RESULTS_LIMIT
        self.min_term_length = settings.MIN_SEARCH_TERM_LENGTH

    def list_books(self, db: Session, testament: Optional[Testament] = None) -> List[Book]:
        """
        List books in canonical order
        Args:
            db: database session
            testament: optional testament filter
        Returns:
            Books ordered by order_index
        """
        try:
            query = db.query(Book)
            if testament:
                query = query.filter(Book.testament == Testament(testament).value)
            return query.order_by(Book.order_index).all()

        except SQLAlchemyError as e:
            logger.error(f"Failed to list books (testament={testament}): {str(e)}")
            raise DatabaseException(f"Failed to list books: {str(e)}")

    def get_book_by_key(self, db: Session, book_key: str) -> Book:
        """Get a book by its key or raise BookNotFoundException"""
        book = db.query(Book).filter(Book.key == book_key).first()
        if not book:
            raise BookNotFoundException(book_key)
        return book

    def get_chapter(self, db: Session, book_key: str, chapter_number: int) -> Chapter:
        """
        Resolve a chapter from book key and chapter number
        Args:
            db: database session
            book_key: book slug
            chapter_number: chapter number inside the book
        Returns:
            Chapter row
        """
        book = self.get_book_by_key(db, book_key)
        chapter = db.query(Chapter).filter(
            Chapter.book_id == book.id,
            Chapter.chapter_number == chapter_number
        ).first()
        if not chapter:
            raise ChapterNotFoundException(book_key, chapter_number)
        return chapter

    def get_chapter_with_verses(self, db: Session, book_key: str, chapter_number: int) -> Dict[str, Any]:
        """
        Get a chapter with its ordered verses
        Args:
            db: database session
            book_key: book slug
            chapter_number: chapter number inside the book
        Returns:
            Dictionary with book, chapter and verses
        """
        chapter = self.get_chapter(db, book_key, chapter_number)
        book = chapter.book
        verses = db.query(Verse).filter(Verse.chapter_id == chapter.id).order_by(Verse.verse_number).all()

        return {
            "book": {
                "id": book.id,
                "name": book.name,
                "key": book.key,
                "testament": book.testament,
                "description": book.description
            },
            "chapter": {
                "id": chapter.id,
                "number": chapter.chapter_number,
                "total_verses": chapter.total_verses,
                "estimated_reading_time": chapter.estimated_reading_time
            },
            "verses": [
                {
                    "id": verse.id,
                    "number": verse.verse_number,
                    "text": verse.text,
                    "word_count": verse.word_count
                }
                for verse in verses
            ]
        }

    def search_verses(
            self,
            db: Session,
            query: str,
            testament: Optional[Testament] = None,
            limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        Case-insensitive substring search over verse text
        Args:
            db: database session
            query: text to look for
            testament: optional testament filter
            limit: maximum number of results
        Returns:
            Matching verses in canonical order, empty when no term is long enough
        """
        query = (query or "").strip()
        terms = [term for term in query.split() if len(term) >= self.min_term_length]
        if not terms: return []

        limit = min(limit or self.search_limit, self.search_limit)

        try:
            rows = db.query(
                Verse.id, Verse.verse_number, Verse.text,
                Chapter.chapter_number, Book.name, Book.key, Book.testament
            ).join(Chapter, Verse.chapter_id == Chapter.id) \
             .join(Book, Chapter.book_id == Book.id) \
             .filter(Verse.text.ilike(f"%{query}%"))

            if testament:
                rows = rows.filter(Book.testament == Testament(testament).value)

            rows = rows.order_by(Book.order_index, Chapter.chapter_number, Verse.verse_number).limit(limit).all()

            return [
                {
                    "id": verse_id,
                    "verse_number": verse_number,
                    "text": text,
                    "chapter_number": chapter_number,
                    "book_name": book_name,
                    "book_key": book_key,
                    "testament": book_testament
                }
                for verse_id, verse_number, text, chapter_number, book_name, book_key, book_testament in rows
            ]

        except SQLAlchemyError as e:
            logger.error(f"Verse search failed for '{query}': {str(e)}")
            raise DatabaseException(f"Verse search failed: {str(e)}")

    @staticmethod
    def count_words(text: str) -> int:
        """Number of whitespace separated words"""
        return len(text.split())

    def estimate_reading_time(self, word_count: int) -> int:
        """Minutes needed to read word_count words at the default speed"""
        return max(1, math.ceil(word_count / settings.DEFAULT_READING_SPEED_WPM))

    def import_books(self, db: Session, payload: BibleImport) -> Dict[str, int]:
        """
        Load books, chapters and verses from an import document
        Args:
            db: database session
            payload: validated import document
        Returns:
            Counts of imported and skipped books, chapters and verses
        """
        summary = {"books": 0, "skipped_books": 0, "chapters": 0, "verses": 0}

        try:
            for book_data in payload.books:
                if db.query(Book).filter(Book.key == book_data.key).first():
                    logger.info(f"Skipping existing book: {book_data.key}")
                    summary["skipped_books"] += 1
                    continue

                book = Book(
                    key=book_data.key,
                    name=book_data.name,
                    testament=book_data.testament.value,
                    order_index=book_data.order_index,
                    total_chapters=len(book_data.chapters),
                    author=book_data.author,
                    description=book_data.description
                )
                db.add(book)
                db.flush()

                for chapter_data in sorted(book_data.chapters, key=lambda c: c.number):
                    word_total = 0
                    chapter = Chapter(
                        book_id=book.id,
                        chapter_number=chapter_data.number,
                        total_verses=len(chapter_data.verses)
                    )
                    db.add(chapter)
                    db.flush()

                    for verse_data in chapter_data.verses:
                        word_count = self.count_words(verse_data.text)
                        word_total += word_count
                        db.add(Verse(
                            chapter_id=chapter.id,
                            verse_number=verse_data.number,
                            text=verse_data.text,
                            word_count=word_count
                        ))
                        summary["verses"] += 1

                    chapter.estimated_reading_time = chapter_data.estimated_reading_time or \
                        self.estimate_reading_time(word_total)
                    summary["chapters"] += 1

                summary["books"] += 1
                logger.info(f"Imported book {book.key} with {book.total_chapters} chapters")

            db.commit()
            return summary

        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Bible import failed: {str(e)}")
            raise DatabaseException(f"Bible import failed: {str(e)}")

bible_service = BibleService()
