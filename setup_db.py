"""
PostgreSQL database setup script for Pantry.
Run this once before starting the API against a fresh server.

    python setup_db.py
"""
import os
import subprocess
import sys

from dotenv import load_dotenv

load_dotenv()

# Database credentials; override through the environment or .env
DB_USER = os.getenv("PANTRY_DB_USER", "pantry")
DB_PASSWORD = os.getenv("PANTRY_DB_PASSWORD", "password")
DB_NAME = os.getenv("PANTRY_DB_NAME", "pantry")
DB_HOST = os.getenv("PANTRY_DB_HOST", "localhost")
DB_PORT = os.getenv("PANTRY_DB_PORT", "5432")


def run_psql(sql: str, database: str = "postgres") -> bool:
    """Run one statement as the postgres superuser. Returns False when psql reports an error."""
    result = subprocess.run(
        ['psql', '-U', 'postgres', '-h', DB_HOST, '-p', DB_PORT, '-d', database, '-c', sql],
        check=False, capture_output=True, text=True
    )
    return result.returncode == 0


def setup_database():
    """Create the role, the database and the tables."""

    print("Pantry PostgreSQL Setup")
    print("=" * 50)

    print("\n1. Checking PostgreSQL installation...")
    try:
        result = subprocess.run(['psql', '--version'], capture_output=True, text=True)
        print(f"   ✓ {result.stdout.strip()}")
    except FileNotFoundError:
        print("   ✗ PostgreSQL not found. Please install PostgreSQL first.")
        print("   Download from: https://www.postgresql.org/download/")
        sys.exit(1)

    print("\n2. Creating database user...")
    if run_psql(f"CREATE USER {DB_USER} WITH PASSWORD '{DB_PASSWORD}';"):
        print(f"   ✓ User '{DB_USER}' created")
    else:
        print(f"   ⚠ User '{DB_USER}' not created (it may already exist)")

    print("\n3. Creating database...")
    if run_psql(f"CREATE DATABASE {DB_NAME} OWNER {DB_USER};"):
        print(f"   ✓ Database '{DB_NAME}' created")
    else:
        print(f"   ⚠ Database '{DB_NAME}' not created (it may already exist)")

    print("\n4. Granting privileges...")
    if run_psql(f"GRANT ALL PRIVILEGES ON DATABASE {DB_NAME} TO {DB_USER};", database=DB_NAME):
        print(f"   ✓ Privileges granted to '{DB_USER}'")
    else:
        print(f"   ⚠ Could not grant privileges to '{DB_USER}'")

    print("\n5. Creating tables...")
    os.environ.setdefault(
        "DATABASE_URL", f"postgresql://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
    )
    from Pantry.database import init_db
    init_db()
    print("   ✓ Tables created successfully")

    print("\n" + "=" * 50)
    print("✓ Setup complete!")
    print(f"\nDatabase: {DB_NAME}")
    print(f"User: {DB_USER}")
    print(f"Host: {DB_HOST}:{DB_PORT}")
    print("\nYou can now run: python -m uvicorn api:app --reload")


if __name__ == "__main__":
    setup_database()
