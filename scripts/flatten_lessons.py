"""Copy nested-only lesson fields to the top level of every stored lesson.

Usage:
  python scripts/flatten_lessons.py [--teacher NAME] [--clean]

Without --clean the nested copy is kept, so running the script twice changes nothing the second
time.
"""

import argparse
import asyncio
import logging
import os
import sys

# Add the project root to the path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

logger = logging.getLogger("scripts.flatten_lessons")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
  parser = argparse.ArgumentParser(description="Flatten legacy nested lesson documents.")
  parser.add_argument("--teacher", default=None, help="Only repair lessons owned by this teacher.")
  parser.add_argument("--clean", action="store_true", help="Delete the nested copy after flattening.")
  return parser.parse_args(argv)


async def flatten(teacher: str | None, clean: bool) -> int:
  # Import after path setup so the script works when run directly.
  from lessonroom.core.database import dispose_db_engine
  from lessonroom.services.lessons import repair_lessons
  from lessonroom.storage.postgres_documents_repo import PostgresDocumentStore

  try:
    summary = await repair_lessons(PostgresDocumentStore(), teacher=teacher, clean=clean)
  finally:
    await dispose_db_engine()
  logger.info("Flattened lessons scanned=%d repaired=%d clean=%s", summary.scanned, summary.repaired, clean)
  return summary.repaired


def main(argv: list[str] | None = None) -> None:
  logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
  args = _parse_args(argv)
  asyncio.run(flatten(args.teacher, args.clean))


if __name__ == "__main__":
  main()
