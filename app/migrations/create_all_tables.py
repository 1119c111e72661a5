"""
Migration script to create all database tables

Run this script to create all database tables:
    python -m app.migrations.create_all_tables

Pass --drop to drop every FilmFinder table first (development only).
"""

import sys

from dotenv import load_dotenv

load_dotenv()

from app.database import engine, Base  # noqa: E402
# Import all models to ensure they're registered with Base
from app.models import (  # noqa: E402,F401
    User,
    UserFilm,
    FilmStatusLog,
    GenerationLog,
    GenerationErrorLog,
    UserPreferences,
    PasswordResetToken,
)


def create_tables(drop_first: bool = False):
    """Create all database tables"""
    print("=" * 60)
    print("Creating all database tables...")
    print("=" * 60)

    try:
        if drop_first:
            Base.metadata.drop_all(bind=engine)
            print("   Dropped existing tables")

        # Create all tables defined in Base metadata
        Base.metadata.create_all(bind=engine)

        print("\n✅ All tables created successfully!")
        print("\nTables created:")
        for table_name in Base.metadata.tables:
            print(f"   - {table_name}")
        print("=" * 60)

    except Exception as e:
        print(f"\n❌ Error creating tables: {e}")
        raise


if __name__ == "__main__":
    create_tables(drop_first="--drop" in sys.argv[1:])
