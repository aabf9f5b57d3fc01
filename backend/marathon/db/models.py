"""
Bible Marathon SQLAlchemy Database Models
"""
from uuid import uuid4
from datetime import datetime, timezone
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey, Text, UniqueConstraint, Index
)
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()

def utcnow() -> datetime:
    """Naive UTC timestamp, the form SQLite stores and compares"""
    return datetime.now(timezone.utc).replace(tzinfo=None)

def as_naive_utc(value: datetime) -> datetime:
    """Convert an aware timestamp to naive UTC, naive ones are assumed UTC"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)

class Book(Base):
    """Book of the Bible, immutable reference data"""
    __tablename__ = "books"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    testament = Column(String, nullable=False)
    order_index = Column(Integer, nullable=False, index=True)
    total_chapters = Column(Integer, nullable=False, default=0)
    author = Column(String, nullable=True)
    description = Column(Text, nullable=True)

    chapters = relationship("Chapter", back_populates="book", cascade="all, delete-orphan",
                            order_by="Chapter.chapter_number")

class Chapter(Base):
    """Chapter within a book"""
    __tablename__ = "chapters"
    __table_args__ = (UniqueConstraint("book_id", "chapter_number", name="uq_chapter_book_number"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    book_id = Column(Integer, ForeignKey("books.id", ondelete="CASCADE"), nullable=False, index=True)
    chapter_number = Column(Integer, nullable=False)
    total_verses = Column(Integer, nullable=False, default=0)
    estimated_reading_time = Column(Integer, nullable=True)

    book = relationship("Book", back_populates="chapters")
    verses = relationship("Verse", back_populates="chapter", cascade="all, delete-orphan",
                          order_by="Verse.verse_number")

class Verse(Base):
    """Verse within a chapter"""
    __tablename__ = "verses"
    __table_args__ = (UniqueConstraint("chapter_id", "verse_number", name="uq_verse_chapter_number"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    chapter_id = Column(Integer, ForeignKey("chapters.id", ondelete="CASCADE"), nullable=False, index=True)
    verse_number = Column(Integer, nullable=False)
    text = Column(Text, nullable=False)
    word_count = Column(Integer, nullable=False, default=0)

    chapter = relationship("Chapter", back_populates="verses")

class Reader(Base):
    """Marathon participant"""
    __tablename__ = "readers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String, unique=True, nullable=False, default=lambda: str(uuid4()))
    name = Column(String, nullable=False, index=True)
    email = Column(String, nullable=True)
    avatar_color = Column(String, nullable=False, default="#6366f1")
    is_active = Column(Boolean, nullable=False, default=True)
    reading_speed_wpm = Column(Integer, nullable=False, default=200)
    # cache of the live aggregates, kept fresh by the reader service
    total_chapters_read = Column(Integer, nullable=False, default=0)
    total_verses_read = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow)

    reading_progress = relationship("ReadingProgress", back_populates="reader", cascade="all, delete-orphan")

class ReadingProgress(Base):
    """Read state of one verse for one reader"""
    __tablename__ = "reading_progress"
    __table_args__ = (
        UniqueConstraint("reader_id", "verse_id", name="uq_progress_reader_verse"),
        Index("ix_progress_read_at", "is_read", "read_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    reader_id = Column(Integer, ForeignKey("readers.id", ondelete="CASCADE"), nullable=False, index=True)
    verse_id = Column(Integer, ForeignKey("verses.id", ondelete="CASCADE"), nullable=False, index=True)
    chapter_id = Column(Integer, ForeignKey("chapters.id", ondelete="CASCADE"), nullable=False, index=True)
    book_id = Column(Integer, ForeignKey("books.id", ondelete="CASCADE"), nullable=False, index=True)
    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    reader = relationship("Reader", back_populates="reading_progress")
    verse = relationship("Verse")
    chapter = relationship("Chapter")
    book = relationship("Book")

class MarathonConfig(Base):
    """Marathon event settings, only one row may be active"""
    __tablename__ = "marathon_config"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    start_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    description = Column(Text, nullable=True)
    total_participants = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

# partial unique index: at most one active marathon
Index(
    "uq_marathon_single_active",
    MarathonConfig.is_active,
    unique=True,
    sqlite_where=MarathonConfig.is_active == True,  # noqa: E712
    postgresql_where=MarathonConfig.is_active == True,  # noqa: E712
)
