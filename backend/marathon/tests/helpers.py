"""
Shared test database and Bible fixtures
"""
import os
import tempfile
from datetime import datetime
from typing import Dict, Optional
from sqlalchemy.orm import sessionmaker
from marathon.db.models import (
    Base, Book, Chapter, MarathonConfig, Reader, ReadingProgress, Verse
)
from marathon.db.sqlite import create_db_engine

def setup_test_db() -> Dict:
    """Create a throwaway SQLite database with all tables"""
    test_dir = tempfile.mkdtemp()
    db_file = os.path.join(test_dir, "test.db")

    engine = create_db_engine(db_file)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    # fixture objects stay usable after commit without reopening a transaction
    FixtureSessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    return {
        'test_dir': test_dir,
        'db_file': db_file,
        'engine': engine,
        'SessionLocal': TestingSessionLocal,
        'FixtureSessionLocal': FixtureSessionLocal,
    }

def clear_db(db):
    """Delete every row, children first"""
    db.query(ReadingProgress).delete()
    db.query(MarathonConfig).delete()
    db.query(Reader).delete()
    db.query(Verse).delete()
    db.query(Chapter).delete()
    db.query(Book).delete()
    db.commit()

def add_book(db, key: str, name: str, testament: str, order_index: int, chapters: Dict[int, int],
             missing_verses: Optional[Dict[int, set]] = None) -> Book:
    """
    Add a book with numbered placeholder verses
    Args:
        db: session
        key: book slug
        name: display name
        testament: old or new
        order_index: canonical position
        chapters: chapter number -> declared verse total
        missing_verses: chapter number -> verse numbers left out of the verses table
    """
    missing_verses = missing_verses or {}
    book = Book(key=key, name=name, testament=testament, order_index=order_index, total_chapters=len(chapters))
    db.add(book)
    db.flush()

    for chapter_number, total_verses in chapters.items():
        chapter = Chapter(book_id=book.id, chapter_number=chapter_number, total_verses=total_verses,
                          estimated_reading_time=1)
        db.add(chapter)
        db.flush()
        for verse_number in range(1, total_verses + 1):
            if verse_number in missing_verses.get(chapter_number, set()):
                continue
            text = f"{name} {chapter_number}:{verse_number} en el principio"
            db.add(Verse(chapter_id=chapter.id, verse_number=verse_number, text=text,
                         word_count=len(text.split())))

    db.commit()
    return book

def seed_bible(db) -> Dict[str, Book]:
    """Genesis 3x5 verses, Exodus 1x20 with verse 10 missing, Matthew 2x4"""
    return {
        "exodus": add_book(db, "exodus", "Éxodo", "old", 2, {1: 20}, missing_verses={1: {10}}),
        "matthew": add_book(db, "matthew", "Mateo", "new", 40, {1: 4, 2: 4}),
        "genesis": add_book(db, "genesis", "Génesis", "old", 1, {1: 5, 2: 5, 3: 5}),
    }

def add_reader(db, name: str, is_active: bool = True) -> Reader:
    reader = Reader(name=name, is_active=is_active)
    db.add(reader)
    db.commit()
    return reader

def get_verse(db, book_key: str, chapter_number: int, verse_number: int) -> Verse:
    """Look up a verse, ending the read transaction so API requests are not blocked"""
    verse = db.query(Verse).join(Chapter, Verse.chapter_id == Chapter.id) \
        .join(Book, Chapter.book_id == Book.id) \
        .filter(Book.key == book_key, Chapter.chapter_number == chapter_number,
                Verse.verse_number == verse_number).one()
    db.commit()
    return verse

def add_progress(db, reader: Reader, verse: Verse, read_at: Optional[datetime], is_read: bool = True) -> ReadingProgress:
    """Insert a progress row directly with a chosen read time"""
    progress = ReadingProgress(
        reader_id=reader.id,
        verse_id=verse.id,
        chapter_id=verse.chapter_id,
        book_id=verse.chapter.book_id,
        is_read=is_read,
        read_at=read_at if is_read else None
    )
    db.add(progress)
    db.commit()
    return progress
