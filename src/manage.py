"""Feed service database management CLI.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys


def _feed_domain():
    from feed.domain import feed

    print("Initializing feed domain...")
    feed.init()
    return feed


def setup_databases():
    """Create the feed database schema."""
    from feed.utils.db import setup_db

    domain = _feed_domain()
    print("Creating feed database schema...")
    setup_db(domain)
    print("Done.")


def drop_databases():
    """Drop the feed database schema."""
    from feed.utils.db import drop_db

    domain = _feed_domain()
    print("Dropping feed database schema...")
    drop_db(domain)
    print("Done.")


def main():
    parser = argparse.ArgumentParser(description="Feed service database management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_databases()
    elif args.command == "drop-db":
        drop_databases()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
