"""
Bible Marathon Realtime Service - Active readers, pace and projections
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from sqlalchemy import distinct, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from marathon.core.config import settings
from marathon.core.exceptions import DatabaseException
from marathon.db.models import Reader, ReadingProgress, utcnow
from marathon.services.marathon_service import marathon_service
from marathon.services.stats_service import stats_service

logger = logging.getLogger(__name__)

class RealtimeService:
    """
    Answers who is reading right now and at what pace.
    Both the activity window and the pace observation window are fixed
    lengths of time ending now, read from settings.
    """

    def __init__(self):
        self.active_window_minutes = settings.ACTIVE_WINDOW_MINUTES
        self.pace_window_minutes = settings.PACE_WINDOW_MINUTES

    def active_readers(
            self,
            db: Session,
            now: Optional[datetime] = None,
            window_minutes: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        Active readers with read activity inside the trailing window
        Args:
            db: database session
            now: end of the window, defaults to the current time
            window_minutes: window length, defaults to ACTIVE_WINDOW_MINUTES
        Returns:
            Readers with recent_verses_read and last_activity, most recent first
        """
        now = now or utcnow()
        cutoff = now - timedelta(minutes=window_minutes or self.active_window_minutes)

        try:
            last_activity = func.max(ReadingProgress.read_at).label("last_activity")
            rows = db.query(
                Reader.id, Reader.name, Reader.avatar_color,
                func.count(ReadingProgress.id), last_activity
            ).join(ReadingProgress, ReadingProgress.reader_id == Reader.id) \
             .filter(
                ReadingProgress.is_read.is_(True),
                ReadingProgress.read_at >= cutoff,
                ReadingProgress.read_at <= now,
                Reader.is_active.is_(True)
             ).group_by(Reader.id, Reader.name, Reader.avatar_color) \
             .order_by(last_activity.desc(), Reader.id).all()

            return [
                {
                    "id": reader_id,
                    "name": name,
                    "avatar_color": avatar_color,
                    "recent_verses_read": recent,
                    "last_activity": last
                }
                for reader_id, name, avatar_color, recent, last in rows
            ]

        except SQLAlchemyError as e:
            logger.error(f"Failed to load active readers since {cutoff}: {str(e)}")
            raise DatabaseException(f"Failed to load active readers: {str(e)}")

    def pace(self, db: Session, now: Optional[datetime] = None, window_minutes: Optional[int] = None) -> float:
        """
        Distinct verses read per hour over the observation window
        Args:
            db: database session
            now: end of the window, defaults to the current time
            window_minutes: window length, defaults to PACE_WINDOW_MINUTES
        Returns:
            Verses per hour, never negative
        """
        now = now or utcnow()
        window_minutes = window_minutes or self.pace_window_minutes
        cutoff = now - timedelta(minutes=window_minutes)

        try:
            recent = db.query(func.count(distinct(ReadingProgress.verse_id))).filter(
                ReadingProgress.is_read.is_(True),
                ReadingProgress.read_at >= cutoff,
                ReadingProgress.read_at <= now
            ).scalar() or 0

        except SQLAlchemyError as e:
            logger.error(f"Failed to compute pace since {cutoff}: {str(e)}")
            raise DatabaseException(f"Failed to compute pace: {str(e)}")

        return round(max(0.0, recent / (window_minutes / 60.0)), 2)

    @staticmethod
    def time_remaining(verses_remaining: int, pace: float) -> Optional[float]:
        """
        Hours needed to read the remaining verses at the given pace
        Args:
            verses_remaining: verses still unread
            pace: verses per hour
        Returns:
            Hours, 0 when nothing remains, None when the pace is zero
        """
        if verses_remaining <= 0: return 0.0
        if pace <= 0: return None

        return round(verses_remaining / pace, 2)

    def realtime_stats(self, db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Progress, activity and projections for live dashboards
        Args:
            db: database session
            now: reference time, defaults to the current time
        Returns:
            Dictionary with overall progress, pace and completion estimates
        """
        now = now or utcnow()
        general = stats_service.general_stats(db)
        active = self.active_readers(db, now=now)
        pace = self.pace(db, now=now)
        hours_remaining = self.time_remaining(general["verses_remaining"], pace)

        stats = {
            "progress": {
                "overall_completion_percentage": general["completion_percentage"],
                "total_verses": general["total_verses"],
                "verses_read": general["total_verses_read"],
                "total_chapters": general["total_chapters"],
                "chapters_with_progress": general["total_chapters_read"],
                "total_books": general["total_books"],
                "books_with_progress": general["books_with_progress"]
            },
            "active_readers": len(active),
            "window_minutes": self.active_window_minutes,
            "pace_window_minutes": self.pace_window_minutes,
            "pace_verses_per_hour": pace,
            "estimated_hours_remaining": hours_remaining,
            "estimated_completion_at": now + timedelta(hours=hours_remaining) if hours_remaining is not None else None,
            "hours_left_in_marathon": None,
            "required_pace_verses_per_hour": None,
            "on_track": None,
            "generated_at": now
        }

        marathon = marathon_service.get_active_config(db)
        if marathon and marathon.end_time:
            hours_left = max(0.0, (marathon.end_time - now).total_seconds() / 3600.0)
            stats["hours_left_in_marathon"] = round(hours_left, 2)
            if hours_left > 0:
                stats["required_pace_verses_per_hour"] = round(general["verses_remaining"] / hours_left, 2)
            stats["on_track"] = hours_remaining is not None and hours_remaining <= hours_left

        return stats

realtime_service = RealtimeService()
