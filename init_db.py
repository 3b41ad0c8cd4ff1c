#!/usr/bin/env python3
"""
Database initialization script.
Run this to create all tables in the database named by DATABASE_URL.
"""

import sys
import os

# Add the app directory to the Python path
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from app.config import settings
from app.database import Base, init_db, test_supabase_connection

def main():
    """Create tables and check the identity provider"""
    try:
        print(f"🔄 Creating tables on {settings.database_url.split('@')[-1]}...")
        init_db()
        print("✅ Tables ready:")
        for table in Base.metadata.sorted_tables:
            print(f"  - {table.name}")
    except Exception as e:
        print(f"❌ Error creating tables: {e}")
        print("\n💡 Troubleshooting:")
        print("1. Check DATABASE_URL in your .env file")
        print("2. Make sure the database server is reachable")
        return False

    if settings.supabase_url:
        if test_supabase_connection():
            print("✅ Supabase auth reachable")
        else:
            print("⚠️  Supabase auth test failed; check SUPABASE_URL and SUPABASE_ANON_KEY")
    else:
        print("⚠️  SUPABASE_URL not set; authenticated endpoints will reject every token")

    return True

if __name__ == "__main__":
    sys.exit(0 if main() else 1)
