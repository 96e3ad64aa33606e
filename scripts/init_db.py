#!/usr/bin/env python3
"""
Initialize the wallet tracker database.

Run this script to create the database schema and the default categories.
Safe to run again on an existing database.
"""
import sys

from wallet_tracker.config.settings import Settings
from wallet_tracker.database.connection import DatabaseConfig, DatabaseManager, initialize_database


def main():
    """initialize the database."""

    settings = Settings.load()
    db_path = sys.argv[1] if len(sys.argv) > 1 else settings.db_path

    config = DatabaseConfig(db_path, timeout=settings.busy_timeout)
    print(f"Initializing database at: {config.db_path}")

    with DatabaseManager(config) as db:
        version = initialize_database(db)
        categories = db.get_connection().execute("SELECT COUNT(*) AS n FROM categories").fetchone()

    print("✓ Database initialized successfully!")
    print(f"  Schema version: {version}")
    print(f"  Categories: {categories['n']}")


if __name__ == "__main__":
    main()
