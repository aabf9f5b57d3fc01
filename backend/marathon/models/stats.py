"""
Bible Marathon Statistics Pydantic Models
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel
from marathon.models.bible import Testament
from marathon.models.marathon import MarathonConfigResponse

class GeneralStats(BaseModel):
    """Whole-Bible totals and completion"""
    total_books: int
    total_chapters: int
    total_verses: int
    total_readers: int
    active_readers: int
    total_verses_read: int
    verses_remaining: int
    completion_percentage: float
    total_chapters_read: int
    chapters_completed: int
    chapters_completion_percentage: float
    books_with_progress: int
    readers_with_progress: int

class BookStats(BaseModel):
    """Completion of one book"""
    id: int
    key: str
    name: str
    testament: Testament
    order_index: int
    total_chapters: int
    author: Optional[str] = None
    description: Optional[str] = None
    total_verses: int
    verses_read: int
    chapters_with_progress: int
    chapters_completed: int
    completion_percentage: float

class ChapterStats(BaseModel):
    """Completion of one chapter"""
    chapter_id: int
    chapter_number: int
    total_verses: int
    verses_read: int
    completion_percentage: float
    is_completed: bool
    readers: List[str]

class BookChapterStats(BaseModel):
    """Chapter grid of one book"""
    book_key: str
    book_name: str
    total_chapters: int
    chapters: List[ChapterStats]

class ReaderStats(BaseModel):
    """Live counts of one reader"""
    id: int
    uuid: str
    name: str
    email: Optional[str] = None
    avatar_color: str
    is_active: bool
    reading_speed_wpm: int
    total_chapters_read: int
    total_verses_read: int
    completion_percentage: float
    last_activity: Optional[datetime] = None

class CompleteStats(BaseModel):
    """Full aggregate payload served to dashboards"""
    general: GeneralStats
    readers: List[ReaderStats]
    books: List[BookStats]
    marathon: Optional[MarathonConfigResponse] = None

class ActiveReader(BaseModel):
    """Reader with activity inside the trailing window"""
    id: int
    name: str
    avatar_color: str
    recent_verses_read: int
    last_activity: datetime

class MarathonProgress(BaseModel):
    """Overall progress counters used by the realtime view"""
    overall_completion_percentage: float
    total_verses: int
    verses_read: int
    total_chapters: int
    chapters_with_progress: int
    total_books: int
    books_with_progress: int

class RealtimeStats(BaseModel):
    """Realtime tracker output"""
    progress: MarathonProgress
    active_readers: int
    window_minutes: int
    pace_window_minutes: int
    pace_verses_per_hour: float
    estimated_hours_remaining: Optional[float] = None
    estimated_completion_at: Optional[datetime] = None
    hours_left_in_marathon: Optional[float] = None
    required_pace_verses_per_hour: Optional[float] = None
    on_track: Optional[bool] = None
    generated_at: datetime
