"""
Bible Marathon Service Tests
Testing aggregation, counters and realtime projections below the HTTP layer
"""
import gc
import json
import os
import shutil
import threading
import time
import unittest
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from unittest.mock import patch
import pytest
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from marathon.core.config import Settings
from marathon.core.exceptions import (
    ChapterNotFoundException, ReaderNotFoundException, ValidationException
)
from marathon.db.models import Book, MarathonConfig, Reader, ReadingProgress, Verse, utcnow
from marathon.models.bible import BibleImport
from marathon.models.marathon import MarathonConfigUpdate
from marathon.models.reader import ReaderCreate, ReaderUpdate
from marathon.services.bible_service import bible_service
from marathon.services.marathon_service import marathon_service
from marathon.services.progress_service import progress_service
from marathon.services.reader_service import reader_service
from marathon.services.realtime_service import realtime_service
from marathon.services.stats_service import completion_percentage, stats_service
from marathon.tests.helpers import (
    add_progress, add_reader, clear_db, get_verse, seed_bible, setup_test_db
)
import import_bible

class TestMarathonServices(unittest.TestCase):
    """Marathon service tests"""

    @classmethod
    def setUpClass(cls):
        cls.db_setup = setup_test_db()

    @classmethod
    def tearDownClass(cls):
        cls.db_setup['engine'].dispose()
        gc.collect()
        shutil.rmtree(cls.db_setup['test_dir'], ignore_errors=True)

    def setUp(self):
        self.db = self.db_setup['SessionLocal']()
        clear_db(self.db)
        self.books = seed_bible(self.db)

    def tearDown(self):
        self.db.close()

    def test_completion_percentage(self):
        """Test rounding, bounds and empty scopes"""
        self.assertEqual(completion_percentage(5, 15), 33.33)
        self.assertEqual(completion_percentage(2, 3), 66.67)
        self.assertEqual(completion_percentage(0, 0), 0.0)
        self.assertEqual(completion_percentage(3, 0), 0.0)
        self.assertEqual(completion_percentage(20, 10), 100.0)
        self.assertEqual(completion_percentage(15, 15), 100.0)

    def test_settings_validation(self):
        """Test settings normalise the log level and reject empty windows"""
        self.assertEqual(Settings(LOG_LEVEL="debug").LOG_LEVEL, "DEBUG")
        with self.assertRaises(ValueError):
            Settings(ACTIVE_WINDOW_MINUTES=0)

    def test_counters_follow_progress(self):
        """Test cached counters always equal the live aggregation"""
        reader = add_reader(self.db, "Juan")
        verse_a = get_verse(self.db, "genesis", 1, 1)
        verse_b = get_verse(self.db, "genesis", 2, 1)

        progress_service.mark_verse(self.db, reader.id, verse_a.id)
        progress_service.mark_verse(self.db, reader.id, verse_b.id)
        progress_service.mark_chapter(self.db, reader.id, "genesis", 1)
        progress_service.mark_verse(self.db, reader.id, verse_b.id, is_read=False)
        progress_service.unmark_chapter(self.db, reader.id, "genesis", 3)

        self.db.refresh(reader)
        live = reader_service.live_counts(self.db, reader.id)
        self.assertEqual(reader_service.cached_counts(reader), live)
        self.assertEqual(live, {"total_verses_read": 5, "total_chapters_read": 1})

    def test_recompute_repairs_drifted_counters(self):
        """Test recompute_counters overwrites a stale cache"""
        reader = add_reader(self.db, "Juan")
        add_progress(self.db, reader, get_verse(self.db, "matthew", 1, 1), utcnow())
        self.assertEqual(reader_service.cached_counts(reader)["total_verses_read"], 0)

        counts = reader_service.recompute_counters(self.db, reader.id)
        self.db.commit()
        self.db.refresh(reader)
        self.assertEqual(counts, {"total_verses_read": 1, "total_chapters_read": 1})
        self.assertEqual(reader.total_verses_read, 1)

    def test_mark_verse_keeps_first_read_time(self):
        """Test re-marking a read verse keeps read_at and a fresh read after unread resets it"""
        reader = add_reader(self.db, "Ana")
        verse = get_verse(self.db, "genesis", 1, 1)
        first = datetime(2026, 10, 1, 8, 0, 0)

        result = progress_service.mark_verse(self.db, reader.id, verse.id, now=first)
        self.assertTrue(result["changed"])
        result = progress_service.mark_verse(self.db, reader.id, verse.id, now=first + timedelta(hours=1))
        self.assertFalse(result["changed"])
        self.assertEqual(result["progress"].read_at, first)

        progress_service.mark_verse(self.db, reader.id, verse.id, is_read=False, now=first + timedelta(hours=2))
        result = progress_service.mark_verse(self.db, reader.id, verse.id, now=first + timedelta(hours=3))
        self.assertTrue(result["changed"])
        self.assertEqual(result["progress"].read_at, first + timedelta(hours=3))
        self.assertEqual(self.db.query(ReadingProgress).count(), 1)

    def test_mark_chapter_generated_note(self):
        """Test bulk marking writes a dashboard note when none is given"""
        reader = add_reader(self.db, "Ana")
        when = datetime(2026, 10, 2, 12, 0, 0)
        result = progress_service.mark_chapter(self.db, reader.id, "matthew", 1, now=when)

        self.assertEqual(result["success_count"], 4)
        self.assertEqual(result["errors"], [])
        notes = {row.notes for row in self.db.query(ReadingProgress).all()}
        self.assertEqual(notes, {"Marked from dashboard - Mateo 1 - 2026-10-02"})

    def test_mark_chapter_unknown_chapter(self):
        """Test marking a chapter that does not exist"""
        reader = add_reader(self.db, "Ana")
        with self.assertRaises(ChapterNotFoundException):
            progress_service.mark_chapter(self.db, reader.id, "matthew", 3)
        with self.assertRaises(ReaderNotFoundException):
            progress_service.mark_chapter(self.db, 999999, "matthew", 1)

    def test_general_stats_counts_distinct_verses(self):
        """Test two readers on the same verse count it once"""
        ana = add_reader(self.db, "Ana")
        luis = add_reader(self.db, "Luis")
        progress_service.mark_chapter(self.db, ana.id, "genesis", 1)
        progress_service.mark_chapter(self.db, luis.id, "genesis", 1)

        general = stats_service.general_stats(self.db)
        self.assertEqual(general["total_verses"], 42)
        self.assertEqual(general["total_verses_read"], 5)
        self.assertEqual(general["verses_remaining"], 37)
        self.assertEqual(general["chapters_completed"], 1)
        self.assertEqual(general["readers_with_progress"], 2)
        self.assertEqual(general["completion_percentage"], completion_percentage(5, 42))

    def test_unread_rows_do_not_count(self):
        """Test progress rows with is_read false are ignored everywhere"""
        reader = add_reader(self.db, "Ana")
        add_progress(self.db, reader, get_verse(self.db, "genesis", 1, 1), None, is_read=False)

        self.assertEqual(stats_service.general_stats(self.db)["total_verses_read"], 0)
        self.assertEqual(reader_service.live_counts(self.db, reader.id)["total_verses_read"], 0)
        chapters = stats_service.chapter_stats(self.db, "genesis")["chapters"]
        self.assertEqual(chapters[0]["readers"], [])

    def test_reader_stats_ordering(self):
        """Test readers rank by chapters, then verses, then name"""
        ana = add_reader(self.db, "Ana")
        luis = add_reader(self.db, "Luis")
        add_reader(self.db, "Berta")
        progress_service.mark_chapter(self.db, luis.id, "genesis", 1)
        progress_service.mark_chapter(self.db, luis.id, "genesis", 2)
        progress_service.mark_chapter(self.db, ana.id, "matthew", 1)

        readers = stats_service.reader_stats(self.db)
        self.assertEqual([reader["name"] for reader in readers], ["Luis", "Ana", "Berta"])
        self.assertEqual(readers[0]["total_chapters_read"], 2)
        self.assertEqual(readers[2]["total_verses_read"], 0)
        self.assertIsNone(readers[2]["last_activity"])

    def test_active_readers_ordering_and_inactive(self):
        """Test most recent first and inactive readers hidden"""
        now = datetime(2026, 10, 3, 20, 0, 0)
        early = add_reader(self.db, "Temprano")
        late = add_reader(self.db, "Tarde")
        paused = add_reader(self.db, "Pausado", is_active=False)
        add_progress(self.db, early, get_verse(self.db, "genesis", 1, 1), now - timedelta(minutes=50))
        add_progress(self.db, early, get_verse(self.db, "genesis", 1, 2), now - timedelta(minutes=40))
        add_progress(self.db, late, get_verse(self.db, "genesis", 1, 3), now - timedelta(minutes=5))
        add_progress(self.db, paused, get_verse(self.db, "genesis", 1, 4), now - timedelta(minutes=1))

        readers = realtime_service.active_readers(self.db, now=now)
        self.assertEqual([reader["name"] for reader in readers], ["Tarde", "Temprano"])
        self.assertEqual(readers[1]["recent_verses_read"], 2)

        readers = realtime_service.active_readers(self.db, now=now, window_minutes=30)
        self.assertEqual([reader["name"] for reader in readers], ["Tarde"])

    def test_pace_and_time_remaining(self):
        """Test pace counts distinct verses inside the window"""
        now = datetime(2026, 10, 3, 20, 0, 0)
        ana = add_reader(self.db, "Ana")
        luis = add_reader(self.db, "Luis")
        for number in range(1, 5):
            add_progress(self.db, ana, get_verse(self.db, "matthew", 1, number), now - timedelta(minutes=10))
        add_progress(self.db, luis, get_verse(self.db, "matthew", 1, 1), now - timedelta(minutes=10))
        add_progress(self.db, luis, get_verse(self.db, "matthew", 2, 1), now - timedelta(hours=3))

        self.assertEqual(realtime_service.pace(self.db, now=now), 4.0)
        self.assertEqual(realtime_service.pace(self.db, now=now, window_minutes=30), 8.0)

        self.assertEqual(realtime_service.time_remaining(40, 4.0), 10.0)
        self.assertEqual(realtime_service.time_remaining(0, 0.0), 0.0)
        self.assertIsNone(realtime_service.time_remaining(10, 0.0))

    def test_realtime_stats_against_marathon(self):
        """Test required pace and on_track against the active marathon"""
        now = datetime(2026, 10, 3, 20, 0, 0)
        reader = add_reader(self.db, "Ana")
        progress_service.mark_chapter(self.db, reader.id, "matthew", 1, now=now - timedelta(minutes=30))
        self.db.add(MarathonConfig(name="Maratón", start_time=now - timedelta(hours=1),
                                   end_time=now + timedelta(hours=19), is_active=True))
        self.db.commit()

        stats = realtime_service.realtime_stats(self.db, now=now)
        self.assertEqual(stats["pace_verses_per_hour"], 4.0)
        self.assertEqual(stats["estimated_hours_remaining"], 9.5)
        self.assertEqual(stats["estimated_completion_at"], now + timedelta(hours=9.5))
        self.assertEqual(stats["hours_left_in_marathon"], 19.0)
        self.assertEqual(stats["required_pace_verses_per_hour"], 2.0)
        self.assertTrue(stats["on_track"])

    def test_realtime_windows_from_settings(self):
        """Test the activity window length comes from the service configuration"""
        now = datetime(2026, 10, 3, 20, 0, 0)
        reader = add_reader(self.db, "Ana")
        add_progress(self.db, reader, get_verse(self.db, "genesis", 1, 1), now - timedelta(minutes=90))

        self.assertEqual(realtime_service.active_readers(self.db, now=now), [])
        with patch.object(realtime_service, 'active_window_minutes', 120):
            self.assertEqual(len(realtime_service.active_readers(self.db, now=now)), 1)

    def test_marathon_config_rules(self):
        """Test defaults, date validation and a single active marathon"""
        add_reader(self.db, "Ana")
        add_reader(self.db, "Luis", is_active=False)

        config = marathon_service.update_config(self.db, MarathonConfigUpdate())
        self.assertEqual(config.name, "Maratón Bíblico")
        self.assertEqual(config.end_time - config.start_time, timedelta(hours=72))
        self.assertEqual(config.total_participants, 1)

        with self.assertRaises(ValidationException):
            marathon_service.update_config(self.db, MarathonConfigUpdate(
                start_time=datetime(2026, 10, 5), end_time=datetime(2026, 10, 4)
            ))

        self.db.add(MarathonConfig(name="Otro", is_active=True))
        with self.assertRaises(IntegrityError):
            self.db.commit()
        self.db.rollback()
        self.assertEqual(self.db.query(MarathonConfig).filter(MarathonConfig.is_active.is_(True)).count(), 1)

    def test_reader_name_resolution(self):
        """Test names resolve case-insensitively and ambiguity is rejected"""
        reader = add_reader(self.db, "Juan")
        self.assertEqual(reader_service.resolve_reader(self.db, reader_name="  juan ").id, reader.id)
        with self.assertRaises(ValidationException):
            reader_service.resolve_reader(self.db)

        add_reader(self.db, "JUAN")
        with self.assertRaises(ValidationException):
            reader_service.resolve_reader(self.db, reader_name="Juan")
        self.assertEqual(reader_service.resolve_reader(self.db, reader_id=reader.id).name, "Juan")

    def test_import_books(self):
        """Test import skips existing books and computes verse metadata"""
        payload = BibleImport(books=[
            {"key": "genesis", "name": "Génesis", "testament": "old", "order_index": 1,
             "chapters": [{"number": 1, "verses": [{"number": 1, "text": "duplicado"}]}]},
            {"key": "ruth", "name": "Rut", "testament": "old", "order_index": 8,
             "chapters": [
                 {"number": 2, "verses": [{"number": 1, "text": "Y Rut la moabita dijo a Noemí"}]},
                 {"number": 1, "verses": [{"number": 1, "text": "Aconteció en los días"},
                                          {"number": 2, "text": "El nombre de aquel varón era Elimelec"}]}
             ]}
        ])

        summary = bible_service.import_books(self.db, payload)
        self.assertEqual(summary, {"books": 1, "skipped_books": 1, "chapters": 2, "verses": 3})

        ruth = self.db.query(Book).filter(Book.key == "ruth").one()
        self.assertEqual(ruth.total_chapters, 2)
        chapter = bible_service.get_chapter(self.db, "ruth", 1)
        self.assertEqual(chapter.total_verses, 2)
        self.assertEqual(chapter.estimated_reading_time, 1)
        verse = self.db.query(Verse).filter(Verse.chapter_id == chapter.id, Verse.verse_number == 2).one()
        self.assertEqual(verse.word_count, 7)
        self.assertEqual([book.key for book in bible_service.list_books(self.db)],
                         ["genesis", "exodus", "ruth", "matthew"])

    def test_import_cli_rejects_bad_documents(self):
        """Test the import script fails cleanly on unreadable input"""
        bad_file = os.path.join(self.db_setup['test_dir'], "bad.json")
        with open(bad_file, "w", encoding="utf-8") as f:
            json.dump({"books": [{"key": "x"}]}, f)

        self.assertEqual(import_bible.main([bad_file]), 1)
        self.assertEqual(import_bible.main([os.path.join(self.db_setup['test_dir'], "missing.json")]), 1)

    def test_delete_reader_removes_progress(self):
        """Test reader deletion cascades to progress rows"""
        reader = add_reader(self.db, "Ana")
        progress_service.mark_chapter(self.db, reader.id, "genesis", 1)

        deleted = reader_service.delete_reader(self.db, reader.id)
        self.assertEqual(deleted["removed_progress"], 5)
        self.assertEqual(self.db.query(ReadingProgress).count(), 0)
        self.assertEqual(self.db.query(Reader).count(), 0)

    def test_concurrent_writers_wait_instead_of_failing(self):
        """Test a writer that read before another session committed still marks its chapter"""
        ana_id = add_reader(self.db, "Ana").id
        luis_id = add_reader(self.db, "Luis").id
        verse_id = get_verse(self.db, "genesis", 2, 1).id
        self.db.commit()

        session_local = self.db_setup['SessionLocal']
        reader_loaded = threading.Event()

        def mark_chapter_after_read():
            db = session_local()
            try:
                reader_service.get_reader(db, ana_id)
                reader_loaded.set()
                time.sleep(0.3)
                return progress_service.mark_chapter(db, ana_id, "genesis", 1)
            finally: db.close()

        def mark_verse_meanwhile():
            reader_loaded.wait(5)
            db = session_local()
            try: return progress_service.mark_verse(db, luis_id, verse_id)["total_verses_read"]
            finally: db.close()

        with ThreadPoolExecutor(max_workers=2) as pool:
            chapter_future = pool.submit(mark_chapter_after_read)
            verse_future = pool.submit(mark_verse_meanwhile)
            chapter_result = chapter_future.result(timeout=60)
            luis_verses = verse_future.result(timeout=60)

        self.assertEqual(chapter_result["success_count"], 5)
        self.assertEqual(chapter_result["errors"], [])
        self.assertEqual(luis_verses, 1)
        self.assertEqual(reader_service.live_counts(self.db, ana_id)["total_verses_read"], 5)
        self.assertEqual(reader_service.live_counts(self.db, luis_id)["total_verses_read"], 1)

    def test_marathon_without_active_row_is_not_duplicated(self):
        """Test updates with no active marathon reuse the latest row"""
        for _ in range(3):
            config = marathon_service.update_config(self.db, MarathonConfigUpdate(is_active=False))
        self.assertFalse(config.is_active)
        self.assertEqual(self.db.query(MarathonConfig).count(), 1)
        self.assertIsNone(marathon_service.get_active_config(self.db))

        reactivated = marathon_service.update_config(self.db, MarathonConfigUpdate(is_active=True))
        self.assertEqual(reactivated.id, config.id)
        self.assertTrue(reactivated.is_active)

    def test_reader_names_are_trimmed(self):
        """Test blank names fail validation and surrounding spaces are dropped"""
        with self.assertRaises(ValidationError):
            ReaderCreate(name="   ")
        with self.assertRaises(ValidationError):
            ReaderUpdate(name="\t")
        self.assertIsNone(ReaderUpdate(email="a@example.com").name)

        reader = reader_service.create_reader(self.db, ReaderCreate(name="  Rut  "))
        self.assertEqual(reader.name, "Rut")
        self.assertEqual(reader_service.resolve_reader(self.db, reader_name="rut").id, reader.id)

    def test_active_readers_ignore_future_rows(self):
        """Test rows after the reference time count neither as activity nor as pace"""
        now = datetime(2026, 10, 3, 20, 0, 0)
        reader = add_reader(self.db, "Ana")
        add_progress(self.db, reader, get_verse(self.db, "genesis", 1, 1), now + timedelta(hours=5))

        self.assertEqual(realtime_service.active_readers(self.db, now=now), [])
        self.assertEqual(realtime_service.pace(self.db, now=now), 0.0)

    def test_stats_follow_active_readers_and_book_details(self):
        """Test reader stats skip paused readers and book stats carry author and description"""
        add_reader(self.db, "Ana")
        add_reader(self.db, "Pausado", is_active=False)
        self.db.query(Book).filter(Book.key == "genesis").update({"author": "Moisés", "description": "Orígenes"})
        self.db.commit()

        self.assertEqual([reader["name"] for reader in stats_service.reader_stats(self.db)], ["Ana"])
        genesis = stats_service.book_stats(self.db)[0]
        self.assertEqual(genesis["author"], "Moisés")
        self.assertEqual(genesis["description"], "Orígenes")


if __name__ == "__main__":
    pytest.main()
