"""Create the ledger database tables.

Usage: python create_tables.py [database_url] [--drop]

The URL defaults to the DATABASE_URL environment variable.
"""

import sys

from wallet_sync.database.connection import create_database_engine, database_url_from_env
from wallet_sync.database.models import create_tables


def main(argv):
    args = [arg for arg in argv if not arg.startswith("--")]
    drop_existing = "--drop" in argv
    database_url = database_url_from_env(args[0] if args else None)

    if not database_url:
        print("Usage: python create_tables.py <database_url> [--drop]")
        print("Example: python create_tables.py sqlite:///ledger.db")
        print("\nOptions:")
        print("  --drop    Drop existing tables before creating (WARNING: destructive!)")
        return 1

    if drop_existing:
        response = input("WARNING: This will delete all recorded ledger transactions! Continue? (yes/no): ")
        if response.lower() != "yes":
            print("Aborted.")
            return 0

    create_tables(create_database_engine(database_url), drop_existing=drop_existing)
    print("✓ Ledger tables created successfully!")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
