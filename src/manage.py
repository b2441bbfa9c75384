"""Commerce database management CLI.

Usage:
    PROTEAN_ENV=production python src/manage.py setup-db   # Create all tables
    PROTEAN_ENV=production python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys

from commerce.domain import commerce
from commerce.utils.db import drop_db, setup_db
from commerce.utils.logging import configure_logging


def main():
    parser = argparse.ArgumentParser(description="Commerce database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    args = parser.parse_args()

    configure_logging()
    commerce.init()

    if args.command == "setup-db":
        touched = setup_db(commerce)
        print(f"Schema ready for: {', '.join(touched) or 'no relational providers'}")
    elif args.command == "drop-db":
        touched = drop_db(commerce)
        print(f"Schema dropped for: {', '.join(touched) or 'no relational providers'}")
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
