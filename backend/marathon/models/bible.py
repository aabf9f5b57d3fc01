"""
Bible Marathon Reference Data Pydantic Models
"""
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field

class Testament(str, Enum):
    """Partition of the books of the Bible"""
    OLD = "old"
    NEW = "new"

class BookItem(BaseModel):
    """Book in list responses"""
    id: int
    key: str
    name: str
    testament: Testament
    order_index: int
    total_chapters: int
    author: Optional[str] = None
    description: Optional[str] = None

    class Config:
        """Pydantic config"""
        from_attributes = True

class BookInfo(BaseModel):
    """Book summary embedded in a chapter response"""
    id: int
    key: str
    name: str
    testament: Testament
    description: Optional[str] = None

class ChapterInfo(BaseModel):
    """Chapter summary embedded in a chapter response"""
    id: int
    number: int
    total_verses: int
    estimated_reading_time: Optional[int] = None

class VerseItem(BaseModel):
    """Verse of a chapter"""
    id: int
    number: int
    text: str
    word_count: int

class ChapterWithVerses(BaseModel):
    """Chapter with its ordered verse list"""
    book: BookInfo
    chapter: ChapterInfo
    verses: List[VerseItem]

class VerseSearchResult(BaseModel):
    """Verse matched by a text search"""
    id: int
    verse_number: int
    text: str
    chapter_number: int
    book_name: str
    book_key: str
    testament: Testament

class VerseImport(BaseModel):
    """Verse in an import document"""
    number: int = Field(..., gt=0)
    text: str

class ChapterImport(BaseModel):
    """Chapter in an import document"""
    number: int = Field(..., gt=0)
    estimated_reading_time: Optional[int] = None
    verses: List[VerseImport]

class BookImport(BaseModel):
    """Book in an import document"""
    key: str
    name: str
    testament: Testament
    order_index: int
    author: Optional[str] = None
    description: Optional[str] = None
    chapters: List[ChapterImport]

class BibleImport(BaseModel):
    """Import document with the reference data of several books"""
    books: List[BookImport]
