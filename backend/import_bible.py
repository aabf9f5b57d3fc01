"""
Load Bible reference data (books, chapters, verses) into the marathon database

Input is a JSON document:
{"books": [{"key": "genesis", "name": "Génesis", "testament": "old", "order_index": 1,
            "chapters": [{"number": 1, "verses": [{"number": 1, "text": "..."}]}]}]}
"""
import argparse
import json
import logging
import sys
from tqdm import tqdm
from pydantic import ValidationError
from marathon.core.exceptions import MarathonException
from marathon.db.sqlite import SessionLocal, initialise_db
from marathon.models.bible import BibleImport
from marathon.services.bible_service import bible_service

logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("import_bible")

def load_document(path: str) -> BibleImport:
    with open(path, "r", encoding="utf-8") as f:
        return BibleImport(**json.load(f))

def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Import Bible books into the marathon database")
    parser.add_argument("file", help="JSON document with books, chapters and verses")
    args = parser.parse_args(argv)

    try:
        document = load_document(args.file)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logger.error(f"Could not read {args.file}: {str(e)}")
        return 1

    initialise_db()
    totals = {"books": 0, "skipped_books": 0, "chapters": 0, "verses": 0}

    db = SessionLocal()
    try:
        with tqdm(total=len(document.books), desc="Books", unit="book") as pbar:
            for book in document.books:
                summary = bible_service.import_books(db, BibleImport(books=[book]))
                for key, value in summary.items():
                    totals[key] += value
                pbar.set_postfix(book=book.key)
                pbar.update(1)
    except MarathonException as e:
        logger.error(f"Import stopped: {e.detail}")
        return 1
    finally:
        db.close()

    print(
        f"Imported {totals['books']} books, {totals['chapters']} chapters, {totals['verses']} verses "
        f"({totals['skipped_books']} existing books skipped)"
    )
    return 0

if __name__ == "__main__":
    sys.exit(main())
