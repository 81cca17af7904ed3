import argparse
import logging
import sys

from .config import load_config
from .database import WordDatabase
from .models import ConfigurationError, StorageError
from .monitoring import setup_logging
from .seed_data import seed_database
from .session import WordBankApp

logger = logging.getLogger("wordbank")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wordbank", description="Fill a word dictionary from a language model.")
    parser.add_argument("--db", help="SQLite database path (overrides DB_PATH)")
    parser.add_argument("--env", help="Path to a .env file")
    parser.add_argument("--log-level", help="Log level (overrides LOG_LEVEL)")
    sub = parser.add_subparsers(dest="command")

    fill = sub.add_parser("fill", help="Fetch words until the target count is stored (default)")
    fill.add_argument("--target", type=int, help="Target word count (overrides TARGET_WORD_COUNT)")

    seed = sub.add_parser("seed", help="Bulk-insert words from a JSON file")
    seed.add_argument("file", help="JSON list of word objects")

    sub.add_parser("stats", help="Print the number of stored words")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    config = load_config(args.env)
    db_path = args.db or config.db_path
    command = args.command or "fill"

    try:
        if command == "seed":
            with WordDatabase(db_path) as storage:
                added = seed_database(storage, args.file)
            logger.info(f"Seeded {added} new words.")
            return 0

        if command == "stats":
            with WordDatabase(db_path) as storage:
                print(storage.count())
            return 0

        logger.info("Starting word bank filler...")
        storage = WordDatabase(db_path)
        app = WordBankApp(config, storage=storage)
        try:
            app.init()
            report = app.populate(getattr(args, "target", None))
        finally:
            storage.close()
        return 0 if report.succeeded else 1
    except (ConfigurationError, StorageError, OSError, ValueError) as e:
        logger.error(f"Unrecoverable error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
