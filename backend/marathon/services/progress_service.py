"""
Bible Marathon Progress Service - Verse and chapter marking
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy import case, func
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from marathon.core.exceptions import (
    DatabaseException, MarathonException, VerseNotFoundException
)
from marathon.db.models import Book, Chapter, Reader, ReadingProgress, Verse, utcnow
from marathon.services.bible_service import bible_service
from marathon.services.reader_service import reader_service

logger = logging.getLogger(__name__)

class ProgressService:
    """Write path for reading progress"""

    def _get_verse(self, db: Session, verse_id: int) -> Tuple[Verse, int]:
        """Verse with the id of the book it belongs to"""
        row = db.query(Verse, Chapter.book_id) \
            .join(Chapter, Verse.chapter_id == Chapter.id) \
            .filter(Verse.id == verse_id).first()
        if not row:
            raise VerseNotFoundException(f"Verse {verse_id} not found")
        return row

    def _find_progress(self, db: Session, reader_id: int, verse_id: int) -> Optional[ReadingProgress]:
        return db.query(ReadingProgress).filter(
            ReadingProgress.reader_id == reader_id,
            ReadingProgress.verse_id == verse_id
        ).populate_existing().first()

    def _upsert(
            self,
            db: Session,
            reader_id: int,
            verse: Verse,
            book_id: int,
            is_read: bool,
            notes: Optional[str],
            now: datetime
    ) -> Tuple[ReadingProgress, bool]:
        """
        Insert or update the progress row of (reader, verse)
        Args:
            db: database session
            reader_id: reader marking the verse
            verse: verse being marked
            book_id: book of the verse
            is_read: new read state
            notes: new notes, None keeps the stored ones
            now: timestamp used for read_at on the transition to read
        Returns:
            Stored row and whether anything changed
        """
        previous = self._find_progress(db, reader_id, verse.id)
        if previous is None:
            changed = True
        else:
            changed = previous.is_read != is_read or (notes is not None and notes != previous.notes)

        stmt = sqlite_insert(ReadingProgress).values(
            reader_id=reader_id,
            verse_id=verse.id,
            chapter_id=verse.chapter_id,
            book_id=book_id,
            is_read=is_read,
            read_at=now if is_read else None,
            notes=notes,
            created_at=now,
            updated_at=now
        )
        excluded = stmt.excluded
        stmt = stmt.on_conflict_do_update(
            index_elements=[ReadingProgress.reader_id, ReadingProgress.verse_id],
            set_={
                "is_read": excluded.is_read,
                # keep the first read time while the verse stays read
                "read_at": case(
                    (excluded.is_read.is_(False), None),
                    (ReadingProgress.is_read.is_(True), func.coalesce(ReadingProgress.read_at, excluded.read_at)),
                    else_=excluded.read_at
                ),
                "notes": func.coalesce(excluded.notes, ReadingProgress.notes),
                "chapter_id": excluded.chapter_id,
                "book_id": excluded.book_id,
                "updated_at": excluded.updated_at
            }
        )
        db.execute(stmt)

        return self._find_progress(db, reader_id, verse.id), changed

    def mark_verse(
            self,
            db: Session,
            reader_id: int,
            verse_id: int,
            is_read: bool = True,
            notes: Optional[str] = None,
            now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Mark a single verse read or unread for a reader
        Args:
            db: database session
            reader_id: reader marking the verse
            verse_id: verse being marked
            is_read: new read state
            notes: optional notes, existing notes are kept when omitted
            now: timestamp to record, defaults to the current time
        Returns:
            Dictionary with the stored row, the changed flag and the reader counters
        """
        reader_service.get_reader(db, reader_id)
        verse, book_id = self._get_verse(db, verse_id)

        try:
            progress, changed = self._upsert(db, reader_id, verse, book_id, is_read, notes, now or utcnow())
            counts = reader_service.recompute_counters(db, reader_id)
            db.commit()
            logger.info(f"Reader {reader_id} marked verse {verse_id} is_read={is_read} (changed={changed})")

            return {"progress": progress, "changed": changed, **counts}

        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to mark verse {verse_id} for reader {reader_id}: {str(e)}")
            raise DatabaseException(f"Failed to mark verse: {str(e)}")

    def mark_chapter(
            self,
            db: Session,
            reader_id: int,
            book_key: str,
            chapter_number: int,
            notes: Optional[str] = None,
            now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Mark every verse of a chapter as read for one reader.
        Each verse is written inside its own savepoint: a failing verse is
        reported and skipped, the others are kept.
        Args:
            db: database session
            reader_id: reader marking the chapter
            book_key: book slug
            chapter_number: chapter number inside the book
            notes: optional notes, a generated note is used when omitted
            now: timestamp to record, defaults to the current time
        Returns:
            Per-verse report with success and failure counts
        """
        reader = reader_service.get_reader(db, reader_id)
        chapter = bible_service.get_chapter(db, book_key, chapter_number)
        book = chapter.book
        now = now or utcnow()
        note = notes or f"Marked from dashboard - {book.name} {chapter_number} - {now.date().isoformat()}"

        verses = {
            verse.verse_number: verse
            for verse in db.query(Verse).filter(Verse.chapter_id == chapter.id).all()
        }

        results = []
        errors = []
        for verse_number in range(1, chapter.total_verses + 1):
            verse = verses.get(verse_number)
            try:
                with db.begin_nested():
                    if verse is None:
                        raise VerseNotFoundException(
                            f"Verse {verse_number} of {book.key} {chapter_number} not found"
                        )
                    self._upsert(db, reader.id, verse, book.id, True, note, now)
                results.append({"verse_number": verse_number, "verse_id": verse.id, "success": True})

            except MarathonException as e:
                logger.warning(f"Verse {verse_number} of {book.key} {chapter_number} failed: {e.detail}")
                errors.append(f"Verse {verse_number}: {e.detail}")
                results.append({"verse_number": verse_number, "verse_id": None, "success": False, "error": e.detail})
            except SQLAlchemyError as e:
                logger.error(f"Database error on verse {verse_number} of {book.key} {chapter_number}: {str(e)}")
                errors.append(f"Verse {verse_number}: {str(e)}")
                results.append({
                    "verse_number": verse_number,
                    "verse_id": verse.id if verse else None,
                    "success": False,
                    "error": str(e)
                })

        try:
            reader_service.recompute_counters(db, reader.id)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to commit chapter {book.key} {chapter_number} for reader {reader.id}: {str(e)}")
            raise DatabaseException(f"Failed to mark chapter: {str(e)}")

        success_count = sum(1 for result in results if result["success"])
        logger.info(
            f"Reader {reader.id} marked {book.key} {chapter_number}: "
            f"{success_count}/{chapter.total_verses} verses succeeded"
        )

        return {
            "reader_id": reader.id,
            "reader_name": reader.name,
            "book_key": book.key,
            "chapter_number": chapter_number,
            "total_verses": chapter.total_verses,
            "success_count": success_count,
            "failed_count": len(results) - success_count,
            "errors": errors,
            "results": results
        }

    def unmark_chapter(self, db: Session, reader_id: int, book_key: str, chapter_number: int) -> Dict[str, Any]:
        """
        Remove one reader's progress rows on a chapter.
        Rows of other readers on the same chapter are left untouched.
        Args:
            db: database session
            reader_id: reader whose rows are removed
            book_key: book slug
            chapter_number: chapter number inside the book
        Returns:
            Dictionary with the number of removed rows
        """
        reader = reader_service.get_reader(db, reader_id)
        chapter = bible_service.get_chapter(db, book_key, chapter_number)

        try:
            removed = db.query(ReadingProgress).filter(
                ReadingProgress.reader_id == reader.id,
                ReadingProgress.chapter_id == chapter.id
            ).delete(synchronize_session=False)
            reader_service.recompute_counters(db, reader.id)
            db.commit()
            logger.info(f"Reader {reader.id} unmarked {book_key} {chapter_number}: {removed} rows removed")

            return {
                "reader_id": reader.id,
                "reader_name": reader.name,
                "book_key": chapter.book.key,
                "chapter_number": chapter_number,
                "removed": removed
            }

        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to unmark {book_key} {chapter_number} for reader {reader.id}: {str(e)}")
            raise DatabaseException(f"Failed to unmark chapter: {str(e)}")

    def all_progress(self, db: Session) -> List[Dict[str, Any]]:
        """Flattened progress rows in canonical order"""
        try:
            rows = db.query(
                ReadingProgress, Reader.name, Book.key, Book.name, Chapter.chapter_number, Verse.verse_number
            ).join(Reader, ReadingProgress.reader_id == Reader.id) \
             .join(Verse, ReadingProgress.verse_id == Verse.id) \
             .join(Chapter, Verse.chapter_id == Chapter.id) \
             .join(Book, Chapter.book_id == Book.id) \
             .order_by(Book.order_index, Chapter.chapter_number, Verse.verse_number, Reader.name).all()

            return [
                {
                    "id": progress.id,
                    "reader_id": progress.reader_id,
                    "reader_name": reader_name,
                    "book_id": progress.book_id,
                    "book_key": book_key,
                    "book_name": book_name,
                    "chapter_id": progress.chapter_id,
                    "chapter_number": chapter_number,
                    "verse_id": progress.verse_id,
                    "verse_number": verse_number,
                    "is_read": progress.is_read,
                    "read_at": progress.read_at,
                    "notes": progress.notes
                }
                for progress, reader_name, book_key, book_name, chapter_number, verse_number in rows
            ]

        except SQLAlchemyError as e:
            logger.error(f"Failed to load progress rows: {str(e)}")
            raise DatabaseException(f"Failed to load progress: {str(e)}")

    def reader_progress(self, db: Session, reader_id: int, chapter_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Progress rows of one reader, optionally limited to a chapter
        Args:
            db: database session
            reader_id: reader to list
            chapter_id: optional chapter filter
        Returns:
            Rows with verse text in canonical order
        """
        reader_service.get_reader(db, reader_id)

        query = db.query(ReadingProgress, Verse.verse_number, Verse.text, Chapter.chapter_number, Book.name) \
            .join(Verse, ReadingProgress.verse_id == Verse.id) \
            .join(Chapter, Verse.chapter_id == Chapter.id) \
            .join(Book, Chapter.book_id == Book.id) \
            .filter(ReadingProgress.reader_id == reader_id)
        if chapter_id is not None:
            query = query.filter(ReadingProgress.chapter_id == chapter_id)

        rows = query.order_by(Book.order_index, Chapter.chapter_number, Verse.verse_number).all()

        return [
            {
                "id": progress.id,
                "verse_id": progress.verse_id,
                "verse_number": verse_number,
                "text": text,
                "chapter_id": progress.chapter_id,
                "chapter_number": chapter_number,
                "book_id": progress.book_id,
                "book_name": book_name,
                "is_read": progress.is_read,
                "read_at": progress.read_at,
                "notes": progress.notes
            }
            for progress, verse_number, text, chapter_number, book_name in rows
        ]

progress_service = ProgressService()
