"""
Bible Marathon Reading Progress Pydantic Models
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

class VerseProgressRequest(BaseModel):
    """Request model for marking a single verse"""
    reader_id: int = Field(..., gt=0)
    verse_id: int = Field(..., gt=0)
    is_read: bool = True
    notes: Optional[str] = None

class ChapterProgressRequest(BaseModel):
    """Request model for marking a whole chapter for one reader"""
    reader_id: Optional[int] = Field(None, gt=0, description="Stable reader identifier")
    reader_name: Optional[str] = Field(None, description="Display name, resolved to an id")
    book_key: str = Field(..., min_length=1)
    chapter_number: int = Field(..., gt=0)
    notes: Optional[str] = None

class ChapterUnmarkRequest(BaseModel):
    """Request model for removing one reader's progress on a chapter"""
    reader_id: Optional[int] = Field(None, gt=0)
    reader_name: Optional[str] = None
    book_key: str = Field(..., min_length=1)
    chapter_number: int = Field(..., gt=0)

class ProgressResponse(BaseModel):
    """Stored progress row"""
    id: int
    reader_id: int
    verse_id: int
    chapter_id: int
    book_id: int
    is_read: bool
    read_at: Optional[datetime] = None
    notes: Optional[str] = None

    class Config:
        """Pydantic config"""
        from_attributes = True

class VerseMarkResponse(BaseModel):
    """Result of marking a single verse"""
    progress: ProgressResponse
    changed: bool
    total_verses_read: int
    total_chapters_read: int

class VerseOutcome(BaseModel):
    """Outcome of one verse inside a chapter operation"""
    verse_number: int
    verse_id: Optional[int] = None
    success: bool
    error: Optional[str] = None

class ChapterMarkResponse(BaseModel):
    """Per-verse report of a chapter marking"""
    reader_id: int
    reader_name: str
    book_key: str
    chapter_number: int
    total_verses: int
    success_count: int
    failed_count: int
    errors: List[str]
    results: List[VerseOutcome]

class ChapterUnmarkResponse(BaseModel):
    """Result of unmarking a chapter"""
    reader_id: int
    reader_name: str
    book_key: str
    chapter_number: int
    removed: int

class ProgressRow(BaseModel):
    """Flattened progress row for client side recomputation"""
    id: int
    reader_id: int
    reader_name: str
    book_id: int
    book_key: str
    book_name: str
    chapter_id: int
    chapter_number: int
    verse_id: int
    verse_number: int
    is_read: bool
    read_at: Optional[datetime] = None
    notes: Optional[str] = None

class ReaderProgressRow(BaseModel):
    """Progress row of one reader with the verse text"""
    id: int
    verse_id: int
    verse_number: int
    text: str
    chapter_id: int
    chapter_number: int
    book_id: int
    book_name: str
    is_read: bool
    read_at: Optional[datetime] = None
    notes: Optional[str] = None
