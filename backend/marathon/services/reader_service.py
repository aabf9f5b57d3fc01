"""
Bible Marathon Reader Service - Reader management and counter maintenance
"""
import logging
from typing import Any, Dict, List
from sqlalchemy import func, distinct
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from marathon.core.config import settings
from marathon.core.exceptions import (
    DatabaseException, ReaderNotFoundException, ValidationException
)
from marathon.db.models import Reader, ReadingProgress
from marathon.models.reader import ReaderCreate, ReaderUpdate

logger = logging.getLogger(__name__)

class ReaderService:
    """
    Service for readers and their denormalized counters

    total_verses_read and total_chapters_read on the reader row are a cache.
    cached_counts() returns them as stored, live_counts() aggregates the
    progress rows again and is the authoritative answer.
    """

    def list_readers(self, db: Session) -> List[Reader]:
        """All readers ordered by name"""
        return db.query(Reader).order_by(Reader.name, Reader.id).all()

    def get_reader(self, db: Session, reader_id: int) -> Reader:
        """Get a reader or raise ReaderNotFoundException"""
        reader = db.query(Reader).filter(Reader.id == reader_id).first()
        if not reader:
            raise ReaderNotFoundException(reader_id)
        return reader

    def get_reader_by_name(self, db: Session, name: str) -> Reader:
        """
        Resolve a display name to a reader
        Args:
            db: database session
            name: display name, compared after trimming and ignoring case
        Returns:
            The only reader with that name
        """
        name = (name or "").strip()
        if not name:
            raise ValidationException("reader_name is required")

        readers = db.query(Reader).filter(func.lower(Reader.name) == name.lower()).all()
        if not readers:
            raise ReaderNotFoundException(f"'{name}'")
        if len(readers) > 1:
            raise ValidationException(f"Reader name '{name}' is ambiguous, use reader_id instead")
        return readers[0]

    def resolve_reader(self, db: Session, reader_id: int = None, reader_name: str = None) -> Reader:
        """Pick the reader from an id, falling back to a display name"""
        if reader_id is not None:
            return self.get_reader(db, reader_id)
        if reader_name:
            return self.get_reader_by_name(db, reader_name)
        raise ValidationException("reader_id or reader_name is required")

    def create_reader(self, db: Session, reader_data: ReaderCreate) -> Reader:
        """Create a reader with default avatar color and reading speed"""
        try:
            reader = Reader(
                name=reader_data.name.strip(),
                email=reader_data.email or None,
                avatar_color=reader_data.avatar_color or settings.DEFAULT_AVATAR_COLOR,
                is_active=reader_data.is_active,
                reading_speed_wpm=reader_data.reading_speed_wpm or settings.DEFAULT_READING_SPEED_WPM
            )
            db.add(reader)
            db.commit()
            db.refresh(reader)
            logger.info(f"Created reader {reader.id} ({reader.name})")
            return reader

        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to create reader {reader_data.name}: {str(e)}")
            raise DatabaseException(f"Failed to create reader: {str(e)}")

    def update_reader(self, db: Session, reader_id: int, reader_update: ReaderUpdate) -> Reader:
        """Update the provided profile fields of a reader"""
        reader = self.get_reader(db, reader_id)

        try:
            update_data = reader_update.dict(exclude_unset=True)
            for field, value in update_data.items():
                if value is not None:
                    setattr(reader, field, value.strip() if field == "name" else value)

            db.commit()
            db.refresh(reader)
            logger.info(f"Updated reader {reader.id}: {sorted(update_data)}")
            return reader

        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to update reader {reader_id}: {str(e)}")
            raise DatabaseException(f"Failed to update reader: {str(e)}")

    def delete_reader(self, db: Session, reader_id: int) -> Dict[str, Any]:
        """Delete a reader together with its progress rows"""
        reader = self.get_reader(db, reader_id)
        deleted = {
            "id": reader.id,
            "name": reader.name,
            "removed_progress": db.query(func.count(ReadingProgress.id))
                                  .filter(ReadingProgress.reader_id == reader_id).scalar() or 0
        }

        try:
            db.delete(reader)
            db.commit()
            logger.info(f"Deleted reader {reader_id} and {deleted['removed_progress']} progress rows")
            return deleted

        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to delete reader {reader_id}: {str(e)}")
            raise DatabaseException(f"Failed to delete reader: {str(e)}")

    def live_counts(self, db: Session, reader_id: int) -> Dict[str, int]:
        """
        Count distinct read verses and chapters of a reader from progress rows
        Args:
            db: database session
            reader_id: reader to count for
        Returns:
            Dictionary with total_verses_read and total_chapters_read
        """
        verses_read, chapters_read = db.query(
            func.count(distinct(ReadingProgress.verse_id)),
            func.count(distinct(ReadingProgress.chapter_id))
        ).filter(
            ReadingProgress.reader_id == reader_id,
            ReadingProgress.is_read.is_(True)
        ).one()

        return {
            "total_verses_read": verses_read or 0,
            "total_chapters_read": chapters_read or 0
        }

    def cached_counts(self, reader: Reader) -> Dict[str, int]:
        """Counters as stored on the reader row"""
        return {
            "total_verses_read": reader.total_verses_read or 0,
            "total_chapters_read": reader.total_chapters_read or 0
        }

    def recompute_counters(self, db: Session, reader_id: int) -> Dict[str, int]:
        """
        Rewrite the cached counters of a reader from its progress rows.
        Runs inside the caller's unit of work, the caller commits.
        Args:
            db: database session
            reader_id: reader whose counters are refreshed
        Returns:
            The recomputed counts
        """
        try:
            counts = self.live_counts(db, reader_id)
            db.query(Reader).filter(Reader.id == reader_id).update(counts, synchronize_session="fetch")
            logger.debug(f"Reader {reader_id} counters: {counts}")
            return counts

        except SQLAlchemyError as e:
            logger.error(f"Failed to recompute counters for reader {reader_id}: {str(e)}")
            raise DatabaseException(f"Failed to recompute reader counters: {str(e)}")

reader_service = ReaderService()
