"""Skidline database management CLI.

Creates and drops the scanning schema on the configured SQL provider. Set
PROTEAN_ENV=production to target the PostgreSQL overlay in domain.toml.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys


def _domain():
    from scanning.domain import scanning

    scanning.init()
    return scanning


def setup_databases():
    from scanning.utils.db import setup_db

    print("Initializing scanning domain...")
    providers = setup_db(_domain())
    if not providers:
        print("  No SQL provider configured; nothing to create.")
    for name in providers:
        print(f"  Schema ready on provider '{name}'.")
    print("Done.")


def drop_databases():
    from scanning.utils.db import drop_db

    print("Initializing scanning domain...")
    providers = drop_db(_domain())
    for name in providers:
        print(f"  Schema dropped on provider '{name}'.")
    print("Done.")


def main():
    parser = argparse.ArgumentParser(description="Skidline database management")
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
